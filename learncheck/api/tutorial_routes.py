# learncheck/api/tutorial_routes.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Body, HTTPException, Request

from learncheck.api.quiz_routes import get_quiz_manager, to_response
from learncheck.cache import build_tutorials_list_key
from learncheck.errors import ContentProviderError, InsufficientContent, TutorialNotFound
from learncheck.schemas import GenerationResponse, TutorialGenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tutorials", tags=["Tutorials"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def list_tutorials(
    request: Request,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
):
    manager = get_quiz_manager(request)
    settings = request.app.state.settings
    key = build_tutorials_list_key(category, difficulty, search)

    cached = await manager.cache.get(key)
    if cached is not None:
        logger.info("[TutorialRoutes] Returning cached tutorials list")
        return {"success": True, "data": cached, "count": len(cached), "source": "cache", "timestamp": _now()}

    if manager.content is None:
        raise HTTPException(status_code=503, detail="No content API configured")
    try:
        tutorials = await manager.content.list_tutorials(category, difficulty, search)
    except ContentProviderError as e:
        logger.error("[TutorialRoutes] Error fetching tutorials: %s", e)
        raise HTTPException(status_code=502, detail=f"Failed to fetch tutorials: {e}")

    await manager.cache.set(key, tutorials, settings.tutorials_list_cache_ttl)
    return {"success": True, "data": tutorials, "count": len(tutorials), "source": "content-api", "timestamp": _now()}


@router.get("/{tutorial_id}")
async def get_tutorial(request: Request, tutorial_id: str):
    manager = get_quiz_manager(request)
    try:
        tutorial = await manager.fetch_tutorial(tutorial_id)
    except TutorialNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientContent as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ContentProviderError as e:
        logger.error("[TutorialRoutes] Error fetching tutorial %s: %s", tutorial_id, e)
        raise HTTPException(status_code=502, detail=f"Failed to fetch tutorial: {e}")
    return {"success": True, "data": tutorial.model_dump(), "timestamp": _now()}


@router.post("/{tutorial_id}/questions", response_model=GenerationResponse, response_model_exclude_none=True)
async def generate_for_tutorial(
    request: Request,
    tutorial_id: str,
    options: Optional[TutorialGenerationRequest] = Body(None),
):
    """Generate questions from a tutorial fetched by id; provider failures degrade to sample questions."""
    result = await get_quiz_manager(request).generate_for_tutorial(tutorial_id, options)
    return to_response(result)
