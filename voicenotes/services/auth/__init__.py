"""
Auth module - stored credential state for the annotation service.
"""

from .credentials import CredentialStore

__all__ = ["CredentialStore"]
