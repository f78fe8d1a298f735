"""
OpenStreetMap Notes publisher.

Uses ``httpx.AsyncClient`` against the OSM API v0.6. Connection failures
before a request reaches the server are retried; anything after that is
reported once, so a note is never created twice in one call.
"""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import AnnotationError
from voicenotes.services.annotation.base import BaseAnnotationPublisher

logger = logging.getLogger(__name__)

NOTES_PATH = "api/0.6/notes.json"
USER_DETAILS_PATH = "api/0.6/user/details.json"


def _json_field(response: httpx.Response, *keys: str):
    """Walk nested JSON objects; None if the body or any level is not an object."""
    try:
        value = response.json()
    except ValueError:
        return None
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


class OsmNotesPublisher(BaseAnnotationPublisher):
    """Creates OpenStreetMap notes for recorded voice notes.

    Args:
        base_url: OSM API root (falls back to settings if not provided).
        timeout: Connect/read/write timeout in seconds.
        transport: Optional httpx transport (used in tests).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.osm_api_base_url).rstrip("/") + "/"
        self._timeout = timeout if timeout is not None else settings.annotation_timeout_seconds
        self._transport = transport

    def _client(self, access_token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    )
    async def _send(self, method: str, path: str, access_token: str, **kwargs) -> httpx.Response:
        async with self._client(access_token) as client:
            response = await client.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    async def _request(self, method: str, path: str, access_token: str, **kwargs) -> httpx.Response:
        """Execute a request, translating httpx failures into AnnotationError."""
        try:
            return await self._send(method, path, access_token, **kwargs)
        except httpx.HTTPStatusError as exc:
            response = exc.response
            detail = response.text.strip() or response.reason_phrase
            logger.warning("OSM API %s %s -> %s", method, path, response.status_code)
            raise AnnotationError(f"HTTP {response.status_code}: {detail}") from exc
        except httpx.TimeoutException as exc:
            raise AnnotationError(f"Request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise AnnotationError(f"Network error: {exc}") from exc

    async def publish(
        self,
        latitude: float,
        longitude: float,
        text: str,
        access_token: str,
    ) -> str:
        """Create a note at the given coordinates."""
        logger.info("Creating OSM note at %s,%s", latitude, longitude)
        response = await self._request(
            "POST",
            NOTES_PATH,
            access_token,
            params={"lat": latitude, "lon": longitude, "text": text},
        )

        confirmation = f"Note created at {latitude},{longitude}"
        note_id = _json_field(response, "properties", "id")
        if note_id is not None:
            confirmation += f" (note #{note_id})"
        return confirmation

    async def fetch_display_name(self, access_token: str) -> str | None:
        """Look up the OSM display name of the token's account."""
        response = await self._request("GET", USER_DETAILS_PATH, access_token)
        display_name = _json_field(response, "user", "display_name")
        return display_name if isinstance(display_name, str) else None
