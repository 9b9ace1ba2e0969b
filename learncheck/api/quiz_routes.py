# learncheck/api/quiz_routes.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Request

from learncheck.quiz_manager import GenerationResult, QuizManager
from learncheck.schemas import GenerationResponse, QuestionSet

router = APIRouter(tags=["Questions"])


def get_quiz_manager(request: Request) -> QuizManager:
    return request.app.state.quiz_manager


def to_response(result: GenerationResult) -> GenerationResponse:
    # A fallback set is a designed degraded answer, so success stays True
    return GenerationResponse(
        success=True,
        data=QuestionSet(questions=result.questions),
        cached=result.cached,
        fallback=result.fallback,
        difficulty=result.difficulty,
        attempt_number=result.attempt_number,
        generated_at=result.generated_at,
        message=result.message,
        metadata=result.metadata,
    )


@router.post("/api/llm/generate-questions", response_model=GenerationResponse, response_model_exclude_none=True)
@router.post("/api/generate-questions", response_model=GenerationResponse, response_model_exclude_none=True)
async def generate_questions(request: Request, payload: Dict[str, Any] = Body(...)):
    """Generate questions for raw tutorial content, adapting difficulty to the previous score."""
    result = await get_quiz_manager(request).generate(payload)
    return to_response(result)


@router.get("/api/llm/models")
async def list_models(request: Request):
    manager = get_quiz_manager(request)
    return {"data": manager.generator.describe(), "status": "success"}
