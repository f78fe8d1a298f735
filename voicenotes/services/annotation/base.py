"""
Abstract base class for map-annotation publishers.

A publisher turns a recording's coordinates and text into a note on a
third-party geographic service, authenticated with a bearer token.
"""

from abc import ABC, abstractmethod


class BaseAnnotationPublisher(ABC):
    """Interface that every annotation publisher must implement."""

    @abstractmethod
    async def publish(
        self,
        latitude: float,
        longitude: float,
        text: str,
        access_token: str,
    ) -> str:
        """Create a remote annotation.

        Args:
            latitude: WGS84 latitude of the note.
            longitude: WGS84 longitude of the note.
            text: Note body, already capped to the configured length.
            access_token: OAuth 2.0 bearer token.

        Returns:
            A human-readable confirmation string.

        Raises:
            AnnotationError: If the service rejects or fails the request.
        """

    @abstractmethod
    async def fetch_display_name(self, access_token: str) -> str | None:
        """Return the account display name for *access_token*, if known."""
