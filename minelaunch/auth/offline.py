"""Offline authentication."""

import hashlib
import uuid

from ..errors import InvalidCredentials
from .base import AuthData


class OfflineAuthenticator:
    """Offline mode authenticator with username only."""

    USER_TYPE = "legacy"

    @staticmethod
    def offline_uuid(username: str) -> str:
        digest = hashlib.md5(f"OfflinePlayer:{username}".encode("utf-8")).digest()
        return uuid.UUID(bytes=digest, version=3).hex

    async def login(self, user: str, password: str = "") -> AuthData:
        """Authenticate offline with given username."""
        if not user or len(user) > 16:
            raise InvalidCredentials(f"invalid username for offline mode: {user!r}")

        return AuthData(
            user_type=self.USER_TYPE,
            player_name=user,
            uuid=self.offline_uuid(user),
            token="0",  # No token needed
        )

    async def refresh(self, auth: AuthData) -> AuthData:
        return auth

    async def validate(self, auth: AuthData) -> bool:
        return auth.user_type == self.USER_TYPE and auth.uuid == self.offline_uuid(auth.player_name)

    async def invalidate(self, auth: AuthData) -> None:
        return None
