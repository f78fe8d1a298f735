"""
Annotation module - map note publishing abstraction layer.

Factory function for creating publisher instances based on provider name.
"""

from .base import BaseAnnotationPublisher

__all__ = ["BaseAnnotationPublisher", "create_publisher"]


def create_publisher(provider: str = "osm", **kwargs) -> BaseAnnotationPublisher:
    """Factory function to create an annotation publisher.

    Args:
        provider: Publisher name ("osm")
        **kwargs: Provider-specific configuration

    Returns:
        BaseAnnotationPublisher implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "osm":
        from .osm import OsmNotesPublisher

        return OsmNotesPublisher(**kwargs)
    raise ValueError(f"Unknown annotation provider: {provider}")
