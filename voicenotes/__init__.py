"""Voice Notes: batch transcription and map annotation of GPS-tagged voice notes."""

__version__ = "0.1.0"
