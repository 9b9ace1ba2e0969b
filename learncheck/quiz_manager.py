# learncheck/quiz_manager.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from learncheck.cache import CacheBackend, build_questions_key, build_tutorial_key
from learncheck.content_client import ContentClient, extract_text, validate_tutorial_content
from learncheck.difficulty import adapt
from learncheck.errors import (
    ContentProviderError,
    GeneratorError,
    InsufficientContent,
    RequestValidationFailed,
    describe_validation_errors,
)
from learncheck.fallback import get_fallback_questions
from learncheck.llm_client import QuestionGenerator
from learncheck.schemas import (
    GenerationMetadata,
    GenerationRequest,
    Question,
    Tutorial,
    TutorialGenerationRequest,
)

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 50000
FALLBACK_MESSAGE = "Live generation unavailable; serving sample questions."


@dataclass
class GenerationResult:
    questions: List[Question]
    difficulty: str
    cached: bool
    fallback: bool
    attempt_number: int
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cache_key: Optional[str] = None
    message: Optional[str] = None
    metadata: Optional[GenerationMetadata] = None


class QuizManager:
    """
    Sequences one generation request: adapt difficulty, look up the cache,
    call the generator on a miss, and fall back to the fixed question set when
    the generator (or the content API) lets us down.
    """

    def __init__(
        self,
        cache: CacheBackend,
        generator: QuestionGenerator,
        content: Optional[ContentClient] = None,
        questions_ttl: int = 3600,
        tutorial_ttl: int = 900,
    ):
        self.cache = cache
        self.generator = generator
        self.content = content
        self.questions_ttl = questions_ttl
        self.tutorial_ttl = tutorial_ttl
        logger.info("QuizManager initialized (questions TTL: %ss)", questions_ttl)

    @staticmethod
    def validate(payload: Union[GenerationRequest, Dict[str, Any]]) -> GenerationRequest:
        if isinstance(payload, GenerationRequest):
            return payload
        try:
            return GenerationRequest.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationFailed(describe_validation_errors(e.errors())) from e

    async def _cached_questions(self, key: str) -> Optional[List[Question]]:
        cached = await self.cache.get(key)
        if not cached:
            return None
        try:
            return [Question.model_validate(q) for q in cached]
        except (ValidationError, TypeError):
            logger.warning("Ignoring malformed cached question set %s", key)
            await self.cache.delete(key)
            return None

    async def generate(self, payload: Union[GenerationRequest, Dict[str, Any]]) -> GenerationResult:
        request = self.validate(payload)
        adjusted = adapt(request.difficulty, request.previous_score, request.attempt_number)
        key = build_questions_key(
            request.content, adjusted, request.question_count, request.attempt_number, request.user_id
        )
        metadata = GenerationMetadata(
            requested_difficulty=request.difficulty,
            adjusted_difficulty=adjusted,
            previous_score=request.previous_score,
            language=request.language,
            question_type=request.question_type,
            content_length=len(request.content),
            question_count=request.question_count,
            tutorial_title=request.tutorial_title,
        )

        questions = await self._cached_questions(key)
        if questions is not None:
            logger.info("Returning cached questions (attempt: %d, difficulty: %s)", request.attempt_number, adjusted)
            return GenerationResult(
                questions=questions,
                difficulty=adjusted,
                cached=True,
                fallback=False,
                attempt_number=request.attempt_number,
                cache_key=key,
                metadata=metadata,
            )

        try:
            questions = await self.generator.generate(
                request.content,
                adjusted,
                request.question_count,
                language=request.language,
                question_type=request.question_type,
                attempt_number=request.attempt_number,
            )
            if not questions:
                raise GeneratorError("Generator returned no questions")
        except Exception:
            # any failure here degrades to the fallback set
            logger.warning(
                "Question generation failed. Using fallback questions. Provider attempted: %s",
                getattr(self.generator, "provider", "unknown"),
                exc_info=True,
            )
            return self._fallback(request.question_count, request.language, adjusted, request.attempt_number, metadata)

        await self.cache.set(key, [q.model_dump(by_alias=True) for q in questions], self.questions_ttl)
        logger.info("Successfully generated %d questions (difficulty: %s)", len(questions), adjusted)
        metadata.question_count = len(questions)
        return GenerationResult(
            questions=questions,
            difficulty=adjusted,
            cached=False,
            fallback=False,
            attempt_number=request.attempt_number,
            cache_key=key,
            metadata=metadata,
        )

    def _fallback(
        self,
        count: int,
        language: str,
        difficulty: str,
        attempt_number: int,
        metadata: Optional[GenerationMetadata] = None,
    ) -> GenerationResult:
        questions = get_fallback_questions(count, language)
        if metadata is not None:
            metadata.question_count = len(questions)
        return GenerationResult(
            questions=questions,
            difficulty=difficulty,
            cached=False,
            fallback=True,
            attempt_number=attempt_number,
            message=FALLBACK_MESSAGE,
            metadata=metadata,
        )

    async def fetch_tutorial(self, tutorial_id: str) -> Tutorial:
        """Tutorial by id, read through the cache. Raises ContentProviderError subclasses."""
        if self.content is None:
            raise ContentProviderError("No content API configured")
        key = build_tutorial_key(tutorial_id)
        cached = await self.cache.get(key)
        if cached:
            try:
                logger.info("Returning cached tutorial: %s", tutorial_id)
                return Tutorial.model_validate(cached)
            except ValidationError:
                await self.cache.delete(key)

        tutorial = await self.content.get_tutorial(tutorial_id)
        if not validate_tutorial_content(tutorial):
            logger.warning("Invalid tutorial content: %s", tutorial_id)
            raise InsufficientContent(f"Tutorial {tutorial_id} content is insufficient for processing")
        await self.cache.set(key, tutorial.model_dump(), self.tutorial_ttl)
        return tutorial

    async def generate_for_tutorial(
        self, tutorial_id: str, options: Optional[TutorialGenerationRequest] = None
    ) -> GenerationResult:
        options = options or TutorialGenerationRequest()
        adjusted = adapt(options.difficulty, options.previous_score, options.attempt_number)
        try:
            tutorial = await self.fetch_tutorial(tutorial_id)
            text = extract_text(tutorial)[:MAX_CONTENT_LENGTH]
            request = GenerationRequest(
                content=text,
                tutorial_title=tutorial.title,
                **options.model_dump(),
            )
        except (ContentProviderError, ValidationError):
            logger.warning("Could not load tutorial %s. Using fallback questions.", tutorial_id, exc_info=True)
            return self._fallback(options.question_count, options.language, adjusted, options.attempt_number)
        return await self.generate(request)
