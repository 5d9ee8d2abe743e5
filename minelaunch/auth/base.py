"""Authentication data and the provider interface the launcher calls."""

from typing import Protocol

from pydantic import BaseModel


class AuthData(BaseModel):
    user_type: str
    player_name: str
    uuid: str
    token: str


class AuthProvider(Protocol):
    async def login(self, user: str, password: str) -> AuthData:
        """Start a new session with the given credentials."""
        ...

    async def refresh(self, auth: AuthData) -> AuthData:
        """Return renewed session data; the old data is no longer usable."""
        ...

    async def validate(self, auth: AuthData) -> bool:
        """Check whether the session data is still usable."""
        ...

    async def invalidate(self, auth: AuthData) -> None:
        """Terminate the session."""
        ...
