"""Server-side session store.

The browser only holds an opaque, signed session id (Starlette's
``SessionMiddleware`` cookie); everything else lives here, in process memory.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from oauthgate.core.directory import utcnow
from oauthgate.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SessionData:
    session_id: str
    provider_id: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class InMemorySessionStore:
    def __init__(self, max_age_seconds: int = 24 * 60 * 60) -> None:
        self._sessions: dict[str, SessionData] = {}
        self._max_age = timedelta(seconds=max_age_seconds)

    def create(self, provider_id: str) -> SessionData:
        now = utcnow()
        self.sweep(now)
        data = SessionData(
            session_id=secrets.token_urlsafe(32),
            provider_id=provider_id,
            created_at=now,
            expires_at=now + self._max_age,
        )
        self._sessions[data.session_id] = data
        return data

    def get(self, session_id: str | None) -> SessionData | None:
        """Return the live session for *session_id*, evicting it if expired."""
        if not session_id:
            return None
        data = self._sessions.get(session_id)
        if data is None:
            return None
        if data.is_expired():
            self._sessions.pop(session_id, None)
            logger.debug("Session expired", provider_id=data.provider_id)
            return None
        return data

    def sweep(self, now: datetime | None = None) -> int:
        """Drop every expired session, including ones whose cookie was abandoned."""
        now = now or utcnow()
        expired = [sid for sid, data in self._sessions.items() if data.is_expired(now)]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.debug("Expired sessions swept", count=len(expired))
        return len(expired)

    def destroy(self, session_id: str | None) -> None:
        if session_id:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
