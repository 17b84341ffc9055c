"""Per-request identity and preference context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from toyotron.errors import StoreError
from toyotron.log import get_logger
from toyotron.storage.models import UserPreferences, UserProfile
from toyotron.storage.user_repo import UserRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class AgentSession:
    """Who is asking, rebuilt from the store on every request."""

    user: Optional[UserProfile] = None
    access_token: Optional[str] = None
    preferences: Optional[UserPreferences] = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


class SessionResolver:
    def __init__(self, users: UserRepository):
        self._users = users

    async def resolve(self, token: Optional[str]) -> AgentSession:
        """Look up the user and preferences. Failures degrade to an anonymous session."""
        if not token:
            return AgentSession()

        try:
            user = await self._users.get_user_by_token(token)
        except StoreError as e:
            logger.error("session_user_lookup_failed", error=str(e))
            return AgentSession()
        if user is None:
            return AgentSession()

        try:
            preferences = await self._users.get_preferences(user.id)
        except StoreError as e:
            logger.error("session_preferences_lookup_failed", user_id=user.id, error=str(e))
            preferences = None

        return AgentSession(user=user, access_token=token, preferences=preferences)
