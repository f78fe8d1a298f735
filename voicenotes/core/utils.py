"""Shared utility functions for Voice Notes."""

_ELLIPSIS = "..."


def placeholder_note_text(latitude: float, longitude: float) -> str:
    """Coordinate-based note text used when a transcript has no words."""
    return f"{latitude},{longitude} (no text)"


def compose_note_text(transcript: str, latitude: float, longitude: float) -> str:
    """Return the transcript, or the coordinate placeholder when it is blank."""
    if transcript and transcript.strip():
        return transcript
    return placeholder_note_text(latitude, longitude)


def truncate_note_text(text: str, max_length: int) -> str:
    """Cap *text* at *max_length* characters, marking the cut with an ellipsis."""
    if max_length <= 0 or len(text) <= max_length:
        return text
    if max_length <= len(_ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(_ELLIPSIS)] + _ELLIPSIS
