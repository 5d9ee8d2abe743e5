"""Authentication module for game accounts."""

from .base import AuthData, AuthProvider
from .offline import OfflineAuthenticator

__all__ = ["AuthData", "AuthProvider", "OfflineAuthenticator"]
