"""Auth router: Google sign-in flow, status, registration completion, logout."""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from oauthgate.api.dependencies import (
    OAUTH_STATE_KEY,
    SESSION_KEY,
    DirectoryDep,
    OptionalUserDep,
    SessionDep,
    SessionStoreDep,
    get_dispatcher,
    get_provider,
)
from oauthgate.core.directory import OPTIONAL_PROFILE_FIELDS
from oauthgate.core.dispatcher import CallbackDispatcher, OAuthProvider
from oauthgate.core.errors import (
    ProviderAuthFailed,
    ProviderNotConfigured,
    SessionTeardownFailed,
    UserNotFound,
)
from oauthgate.core.logging import get_logger
from oauthgate.schemas.user import (
    AuthStatusOut,
    RegistrationFieldsOut,
    RegistrationIn,
    RegistrationOut,
    RegistrationStatusOut,
    UserOut,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)

ProviderDep = Annotated[OAuthProvider, Depends(get_provider)]
DispatcherDep = Annotated[CallbackDispatcher, Depends(get_dispatcher)]


@router.get("/google")
async def google_login(request: Request, provider: ProviderDep) -> RedirectResponse:
    """Start the Google OAuth redirect flow."""
    if not provider.is_configured:
        raise ProviderNotConfigured("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET are not set")

    state = secrets.token_urlsafe(24)
    request.session[OAUTH_STATE_KEY] = state
    return RedirectResponse(provider.authorization_url(state), status_code=status.HTTP_302_FOUND)


@router.get("/google/callback")
async def google_callback(
    request: Request,
    dispatcher: DispatcherDep,
    store: SessionStoreDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Finish the OAuth flow. Always answers with a redirect."""
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)

    if error:
        outcome = dispatcher.dispatch_denied(error)
    elif (
        not code
        or not state
        or not expected_state
        or not secrets.compare_digest(state, expected_state)
    ):
        logger.warning("OAuth callback rejected", reason="state mismatch or missing code")
        outcome = dispatcher.fail(
            ProviderAuthFailed("Sign-in session expired, please try again")
        )
    else:
        outcome = await dispatcher.dispatch(code)

    if outcome.succeeded:
        # Fresh session id on every login
        store.destroy(request.session.get(SESSION_KEY))
        data = store.create(outcome.identity.provider_id)
        request.session.clear()
        request.session[SESSION_KEY] = data.session_id

    return RedirectResponse(outcome.redirect_url, status_code=status.HTTP_302_FOUND)


@router.get("/status", response_model=AuthStatusOut)
async def auth_status(user: OptionalUserDep) -> AuthStatusOut:
    if user is None:
        return AuthStatusOut(authenticated=False)
    return AuthStatusOut(authenticated=True, user=UserOut.model_validate(user))


@router.post("/complete-registration", response_model=RegistrationOut)
async def complete_registration(
    payload: RegistrationIn, session: SessionDep, directory: DirectoryDep
) -> RegistrationOut:
    """Collect the mandatory profile data (phone) and unlock fully gated routes."""
    user = await directory.complete_registration(session.provider_id, payload.to_fields())
    logger.info("Registration completed", email=user.email)
    return RegistrationOut(user=UserOut.model_validate(user))


@router.get("/registration-status", response_model=RegistrationStatusOut)
async def registration_status(
    session: SessionDep, directory: DirectoryDep
) -> RegistrationStatusOut:
    user = await directory.lookup(session.provider_id)
    if user is None:
        raise UserNotFound()
    filled = {name: getattr(user, name) is not None for name in OPTIONAL_PROFILE_FIELDS}
    return RegistrationStatusOut(
        is_registration_complete=user.is_registration_complete,
        registration_completed_at=user.registration_completed_at,
        fields=RegistrationFieldsOut(phone=bool(user.phone), **filled),
    )


@router.post("/logout")
async def logout(request: Request, store: SessionStoreDep) -> JSONResponse:
    # Server side first: if it fails the cookie still names a live session
    try:
        store.destroy(request.session.get(SESSION_KEY))
    except Exception as exc:
        logger.error("Session destruction failed", error=str(exc))
        raise SessionTeardownFailed() from exc
    request.session.clear()
    logger.info("User logged out")
    return JSONResponse({"message": "Logged out successfully"})


@router.get("/failure", status_code=status.HTTP_401_UNAUTHORIZED)
async def auth_failure() -> JSONResponse:
    return JSONResponse(
        {
            "error": "Authentication failed",
            "message": "Google OAuth authentication was unsuccessful",
        },
        status_code=status.HTTP_401_UNAUTHORIZED,
    )
