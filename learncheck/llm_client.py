# learncheck/llm_client.py
import logging
from typing import Any, Dict, List, Optional

import httpx

from learncheck.config import Settings
from learncheck.errors import GeneratorUnavailable, MalformedOutputError
from learncheck.normalize import normalize_questions, parse_question_array, prompt_excerpt
from learncheck.schemas import Question

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("ollama", "gemini")

DIFFICULTY_DESCRIPTIONS = {
    "id": {
        "easy": "Pemahaman dasar dan mengingat konsep (easy recall)",
        "medium": "Aplikasi konsep dan analisis (application & analysis)",
        "hard": "Sintesis dan evaluasi mendalam (synthesis & evaluation)",
    },
    "en": {
        "easy": "Basic understanding and recall of concepts",
        "medium": "Applying concepts and analysis",
        "hard": "In-depth synthesis and evaluation",
    },
}

_PROMPT_ID = """Kamu adalah asisten pembuat soal formatif untuk platform pembelajaran.

KONTEN MATERI PEMBELAJARAN:
{content}

TUGAS KAMU:
Buat {count} soal {question_type} BERKUALITAS TINGGI untuk formative assessment.{variation}

ATURAN PENTING:
1. Tingkat kesulitan: {difficulty} - {difficulty_description}
2. Gunakan Bahasa Indonesia yang baik dan benar untuk semua soal dan penjelasan.
3. Soal harus RELEVAN dengan konten materi di atas
4. Hindari soal yang terlalu mudah ditebak
5. Setiap soal HARUS memiliki 4 pilihan (A, B, C, D)
6. Hanya 1 jawaban benar per soal
7. Penjelasan harus MENDIDIK dan membantu siswa memahami konsep

FORMAT OUTPUT - WAJIB JSON VALID:
{schema}

CRITICAL:
- Output HARUS JSON array valid
- JANGAN tambahkan text di luar JSON
- JANGAN gunakan markdown code blocks
- Langsung mulai dengan [ dan akhiri dengan ]"""

_PROMPT_EN = """You are an assistant that writes formative assessment questions for a learning platform.

LEARNING MATERIAL:
{content}

YOUR TASK:
Write {count} HIGH QUALITY {question_type} questions for a formative assessment.{variation}

RULES:
1. Difficulty: {difficulty} - {difficulty_description}
2. Use clear and proper English for every question and explanation.
3. Questions must be RELEVANT to the material above
4. Avoid questions that are easy to guess
5. Every question MUST have 4 options (A, B, C, D)
6. Exactly 1 correct answer per question
7. Explanations must teach and help the learner understand the concept

OUTPUT FORMAT - VALID JSON ONLY:
{schema}

CRITICAL:
- Output MUST be a valid JSON array
- Do NOT add any text outside the JSON
- Do NOT use markdown code blocks
- Start with [ and end with ]"""

_SCHEMA_EXAMPLE = """[
  {
    "id": 1,
    "question": "...?",
    "options": [
      {"id": "A", "text": "..."},
      {"id": "B", "text": "..."},
      {"id": "C", "text": "..."},
      {"id": "D", "text": "..."}
    ],
    "correctAnswer": "B",
    "explanation": "..."
  }
]"""

_VARIATION_NOTE = {
    "id": "\nINI ADALAH PERCOBAAN KE-{n}. Buat soal yang BERBEDA dari sebelumnya dengan memfokuskan aspek yang berbeda dari materi.",
    "en": "\nTHIS IS ATTEMPT NUMBER {n}. Write questions DIFFERENT from earlier attempts by focusing on other aspects of the material.",
}


def create_prompt(
    content: str,
    count: int,
    difficulty: str,
    language: str = "id",
    question_type: str = "multiple-choice",
    attempt_number: int = 0,
) -> str:
    """Build the generation prompt; the material is cleaned and cut to a bounded prefix."""
    lang = language if language in _VARIATION_NOTE else "id"
    template = _PROMPT_ID if lang == "id" else _PROMPT_EN
    variation = _VARIATION_NOTE[lang].format(n=attempt_number + 1) if attempt_number > 0 else ""
    return template.format(
        content=prompt_excerpt(content),
        count=count,
        question_type=question_type,
        variation=variation,
        difficulty=difficulty,
        difficulty_description=DIFFICULTY_DESCRIPTIONS[lang].get(difficulty, difficulty),
        schema=_SCHEMA_EXAMPLE,
    )


class QuestionGenerator:
    """
    Turns tutorial text into questions through an LLM served by Ollama or Gemini.

    Raises a GeneratorError subclass on any failure; deciding what to serve
    instead is the caller's job.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if settings.llm_provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported LLM_PROVIDER {settings.llm_provider!r}; use one of {SUPPORTED_PROVIDERS}")
        self.settings = settings
        self._transport = transport

    @property
    def provider(self) -> str:
        return self.settings.llm_provider

    @property
    def model_name(self) -> str:
        if self.provider == "gemini":
            return self.settings.gemini_model
        return self.settings.ollama_model_name

    @property
    def available(self) -> bool:
        if self.provider == "gemini":
            return bool(self.settings.gemini_api_key)
        return True

    def describe(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model_name,
            "available": self.available,
            "capabilities": ["text-generation", "question-generation", "content-analysis"],
            "languages": ["id", "en"],
            "maxContentLength": 50000,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.llm_timeout, transport=self._transport)

    async def _call_ollama(self, prompt: str) -> str:
        url = f"{self.settings.ollama_url}/api/generate"
        payload = {
            "model": self.settings.ollama_model_name,
            "prompt": prompt,
            "stream": False,
        }
        logger.info("Attempting LLM call to %s with model %s", url, self.settings.ollama_model_name)
        async with self._client() as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        text = body.get("response") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise MalformedOutputError("Ollama response has no 'response' text")
        return text

    async def _call_gemini(self, prompt: str) -> str:
        if not self.settings.gemini_api_key:
            raise GeneratorUnavailable("GEMINI_API_KEY not set")
        url = f"{self.settings.gemini_api_url}/models/{self.settings.gemini_model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        logger.info("Attempting LLM call to Gemini model %s", self.settings.gemini_model)
        async with self._client() as client:
            resp = await client.post(url, params={"key": self.settings.gemini_api_key}, json=payload)
            resp.raise_for_status()
            body = resp.json()
        try:
            return body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedOutputError("Gemini response has no candidate text") from e

    async def complete(self, prompt: str) -> str:
        """Send the prompt and return the raw model text."""
        try:
            if self.provider == "gemini":
                return await self._call_gemini(prompt)
            return await self._call_ollama(prompt)
        except httpx.HTTPStatusError as e:
            raise GeneratorUnavailable(f"LLM endpoint answered {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise GeneratorUnavailable(f"LLM endpoint unreachable: {e}") from e
        except ValueError as e:
            # resp.json() on a non-JSON body
            raise MalformedOutputError(f"LLM endpoint returned non-JSON body: {e}") from e

    async def generate(
        self,
        content: str,
        difficulty: str,
        count: int,
        language: str = "id",
        question_type: str = "multiple-choice",
        attempt_number: int = 0,
    ) -> List[Question]:
        prompt = create_prompt(content, count, difficulty, language, question_type, attempt_number)
        logger.info("Generating %d questions (difficulty: %s, attempt: %d)", count, difficulty, attempt_number)
        text = await self.complete(prompt)
        logger.debug("Raw model response length: %d", len(text))
        questions = normalize_questions(parse_question_array(text), count, language)
        if not questions:
            raise MalformedOutputError("Failed to generate valid questions")
        logger.info("Successfully parsed %d questions from %s", len(questions), self.model_name)
        return questions
