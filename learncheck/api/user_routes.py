# learncheck/api/user_routes.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from learncheck.api.quiz_routes import get_quiz_manager
from learncheck.cache import build_preferences_key
from learncheck.errors import ContentProviderError, ErrorKind
from learncheck.schemas import UserPreferences

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/{user_id}/preferences")
async def get_preferences(request: Request, user_id: str):
    manager = get_quiz_manager(request)
    key = build_preferences_key(user_id)
    now = datetime.now(timezone.utc).isoformat()

    cached = await manager.cache.get(key)
    if cached is not None:
        logger.info("[UserRoutes] Returning cached preferences for user: %s", user_id)
        return {"success": True, "data": cached, "source": "cache", "timestamp": now}

    if manager.content is None:
        raise HTTPException(status_code=503, detail="No content API configured")
    result = await manager.content.get_user_preferences(user_id)
    if not result.ok:
        if result.error == ErrorKind.NOT_FOUND:
            raise HTTPException(status_code=404, detail=result.message)
        # The widget falls back to its own defaults; it only needs to know why
        raise HTTPException(status_code=502, detail=f"Failed to fetch user preferences: {result.message}")

    await manager.cache.set(key, result.value, request.app.state.settings.preferences_cache_ttl)
    return {"success": True, "data": result.value, "source": "content-api", "timestamp": now}


@router.put("/{user_id}/preferences")
async def update_preferences(request: Request, user_id: str, preferences: UserPreferences):
    manager = get_quiz_manager(request)
    if manager.content is None:
        raise HTTPException(status_code=503, detail="No content API configured")
    try:
        result = await manager.content.update_user_preferences(user_id, preferences)
    except ContentProviderError as e:
        logger.error("[UserRoutes] Error updating preferences for user %s: %s", user_id, e)
        raise HTTPException(status_code=502, detail=str(e))

    await manager.cache.delete(build_preferences_key(user_id))
    return {
        "success": True,
        "data": result["data"],
        "updated": result["updated"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
