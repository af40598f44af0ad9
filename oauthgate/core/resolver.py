"""Session resolver: turns a provider profile into an authenticated identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from oauthgate.core.claims import IdentityClaim, normalize_profile
from oauthgate.core.directory import UserDirectory, UserRecord
from oauthgate.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    user: UserRecord
    # Computed at authentication time only; never persisted
    is_new_user: bool

    @property
    def provider_id(self) -> str:
        return self.user.provider_id

    @property
    def is_registration_complete(self) -> bool:
        return self.user.is_registration_complete


class SessionResolver:
    """Bridges the OAuth callback to directory state."""

    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    async def resolve(self, profile: dict[str, Any], access_token: str) -> SessionIdentity:
        """Normalize *profile* and record the login. Raises MalformedProfile."""
        return await self.resolve_claim(normalize_profile(profile, access_token))

    async def resolve_claim(self, claim: IdentityClaim) -> SessionIdentity:
        user, is_new = await self._directory.upsert_on_login(claim)
        logger.info("User authenticated", email=user.email, new_user=is_new)
        return SessionIdentity(user=user, is_new_user=is_new)

    async def abandon(self, identity: SessionIdentity) -> None:
        """Forget a first login whose sign-in failed after the directory call."""
        if not identity.is_new_user:
            return
        discarded = await self._directory.discard(
            identity.provider_id, last_login_at=identity.user.last_login_at
        )
        if discarded:
            logger.info("First login rolled back", provider_id=identity.provider_id)
