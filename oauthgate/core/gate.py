"""Access gate predicates.

Routes fall into three tiers: public, authenticated-only and fully gated
(authenticated and registration complete). The user is reloaded from the
directory on every check, so a completion made in one request is seen by the
next without touching the session.
"""

from __future__ import annotations

from datetime import datetime

from oauthgate.core.directory import UserDirectory, UserRecord
from oauthgate.core.sessions import SessionData


def is_authenticated(session: SessionData | None, now: datetime | None = None) -> bool:
    return session is not None and not session.is_expired(now)


async def load_session_user(
    session: SessionData | None,
    directory: UserDirectory,
    now: datetime | None = None,
) -> UserRecord | None:
    """Return the live directory record behind *session*, if any."""
    if not is_authenticated(session, now):
        return None
    return await directory.lookup(session.provider_id)


async def is_registration_complete(
    session: SessionData | None,
    directory: UserDirectory,
    now: datetime | None = None,
) -> bool:
    user = await load_session_user(session, directory, now)
    return user is not None and user.is_registration_complete
