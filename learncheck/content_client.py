# learncheck/content_client.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from learncheck.errors import ContentProviderError, ErrorKind, Result, TutorialNotFound
from learncheck.normalize import clean_content
from learncheck.schemas import Tutorial, UserPreferences

logger = logging.getLogger(__name__)

MIN_TUTORIAL_CONTENT_LENGTH = 100


class ContentClient:
    """Async client for the tutorial content API (tutorials and user preferences)."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        logger.info("[ContentClient] %s %s", method, path)
        try:
            resp = await self.client.request(method, path, **kwargs)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("[ContentClient] Error %s: %s", e.response.status_code, path)
            raise
        except httpx.RequestError as e:
            logger.error("[ContentClient] Error NETWORK_ERROR: %s (%s)", path, e)
            raise ContentProviderError(f"Content API unreachable: {e}") from e
        except ValueError as e:
            raise ContentProviderError(f"Content API returned non-JSON body for {path}") from e
        if not isinstance(body, dict):
            raise ContentProviderError(f"Unexpected response shape for {path}")
        return body

    async def list_tutorials(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {k: v for k, v in (("category", category), ("difficulty", difficulty), ("search", search)) if v}
        try:
            body = await self._request("GET", "/api/tutorials", params=params)
        except httpx.HTTPStatusError as e:
            raise ContentProviderError(f"Failed to fetch tutorials: {e.response.status_code}") from e
        data = body.get("data") or []
        return data if isinstance(data, list) else []

    async def get_tutorial(self, tutorial_id: str) -> Tutorial:
        try:
            body = await self._request("GET", f"/api/tutorials/{tutorial_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.warning("[ContentClient] Tutorial not found: %s", tutorial_id)
                raise TutorialNotFound(tutorial_id) from e
            raise ContentProviderError(f"Failed to fetch tutorial: {e.response.status_code}") from e
        data = body.get("data")
        if not isinstance(data, dict):
            raise ContentProviderError(f"Tutorial {tutorial_id} response carries no data")
        try:
            return Tutorial.model_validate(data)
        except ValidationError as e:
            raise ContentProviderError(f"Tutorial {tutorial_id} has an unexpected shape") from e

    async def get_user_preferences(self, user_id: str) -> Result[Dict[str, Any]]:
        """Fetch preferences; failure is reported in the Result rather than raised."""
        try:
            body = await self._request("GET", f"/api/users/{user_id}/preferences")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return Result.failure(ErrorKind.NOT_FOUND, f"No preferences for {user_id}")
            return Result.failure(ErrorKind.UNAVAILABLE, f"Content API answered {e.response.status_code}")
        except ContentProviderError as e:
            logger.error("[ContentClient] Error fetching user preferences for %s: %s", user_id, e)
            return Result.failure(ErrorKind.UNAVAILABLE, str(e))
        data = body.get("data")
        if not isinstance(data, dict):
            return Result.failure(ErrorKind.INVALID, "Preferences response carries no data")
        return Result.success(data)

    async def update_user_preferences(self, user_id: str, preferences: UserPreferences) -> Dict[str, Any]:
        payload = preferences.model_dump(by_alias=True, exclude_none=True)
        try:
            body = await self._request("PUT", f"/api/users/{user_id}/preferences", json=payload)
        except httpx.HTTPStatusError as e:
            raise ContentProviderError(f"Failed to update user preferences: {e.response.status_code}") from e
        return {"data": body.get("data"), "updated": body.get("updated", list(payload.keys()))}

    async def health_check(self) -> Dict[str, Any]:
        try:
            body = await self._request("GET", "/health")
        except (httpx.HTTPStatusError, ContentProviderError) as e:
            logger.error("[ContentClient] Health check failed: %s", e)
            return {
                "success": False,
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        return {
            "success": True,
            "status": body.get("status"),
            "service": body.get("service"),
            "timestamp": body.get("timestamp"),
            "tutorials_count": body.get("tutorials_count"),
        }


def validate_tutorial_content(tutorial: Optional[Tutorial]) -> bool:
    """A tutorial is usable when id, title and content are non-empty and the text is long enough."""
    if tutorial is None:
        return False
    for value in (tutorial.id, tutorial.title, tutorial.content):
        if not isinstance(value, str) or not value.strip():
            return False
    return len(tutorial.content) >= MIN_TUTORIAL_CONTENT_LENGTH


def extract_text(tutorial: Tutorial) -> str:
    return clean_content(tutorial.content)
