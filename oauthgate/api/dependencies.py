"""FastAPI dependency providers and access-gate dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from oauthgate.core.config import Settings
from oauthgate.core.directory import UserDirectory, UserRecord
from oauthgate.core.dispatcher import CallbackDispatcher, OAuthProvider
from oauthgate.core.errors import RegistrationIncomplete, Unauthenticated
from oauthgate.core.gate import is_authenticated, load_session_user
from oauthgate.core.sessions import InMemorySessionStore, SessionData

SESSION_KEY = "sid"
OAUTH_STATE_KEY = "oauth_state"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_directory(request: Request) -> UserDirectory:
    return request.app.state.directory


def get_session_store(request: Request) -> InMemorySessionStore:
    return request.app.state.sessions


def get_provider(request: Request) -> OAuthProvider:
    return request.app.state.provider


def get_dispatcher(request: Request) -> CallbackDispatcher:
    return request.app.state.dispatcher


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
DirectoryDep = Annotated[UserDirectory, Depends(get_directory)]
SessionStoreDep = Annotated[InMemorySessionStore, Depends(get_session_store)]


def get_current_session(request: Request, store: SessionStoreDep) -> SessionData | None:
    """Return the live server-side session referenced by the cookie, if any."""
    return store.get(request.session.get(SESSION_KEY))


CurrentSessionDep = Annotated[SessionData | None, Depends(get_current_session)]


async def get_optional_user(
    session: CurrentSessionDep, directory: DirectoryDep
) -> UserRecord | None:
    """Reload the session's user from the directory on every request."""
    return await load_session_user(session, directory)


async def require_session(session: CurrentSessionDep) -> SessionData:
    """Raise 401 unless a non-expired session exists."""
    if not is_authenticated(session):
        raise Unauthenticated()
    return session


async def require_authenticated(
    user: Annotated[UserRecord | None, Depends(get_optional_user)],
) -> UserRecord:
    """Raise 401 unless the session resolves to a directory record."""
    if user is None:
        raise Unauthenticated()
    return user


async def require_registration_complete(
    user: Annotated[UserRecord, Depends(require_authenticated)],
) -> UserRecord:
    """Raise 403 with a redirect hint if registration is not complete."""
    if not user.is_registration_complete:
        raise RegistrationIncomplete()
    return user


OptionalUserDep = Annotated[UserRecord | None, Depends(get_optional_user)]
SessionDep = Annotated[SessionData, Depends(require_session)]
AuthenticatedUserDep = Annotated[UserRecord, Depends(require_authenticated)]
RegisteredUserDep = Annotated[UserRecord, Depends(require_registration_complete)]
