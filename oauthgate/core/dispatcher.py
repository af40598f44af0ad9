"""Callback dispatcher: the tail of the OAuth flow.

    EXCHANGING ──► CLAIM_NORMALIZED ──► DIRECTORY_RESOLVED ──► [RELAYING] ──► REDIRECTING
        │                 │                     │                   │
        └─────────────────┴──────────► FAILED ◄─┴───────────────────┘
                                          │
                                          └──► redirect to the error page

Every outcome is a redirect URL. Failures carry a short human-readable
message and no identity, so the caller establishes no session for them.
Nothing is retried; the user restarts the flow from ``/auth/google``.
A record created by a first sign-in whose relay then fails is discarded again,
so the retry is still a first sign-in.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol
from urllib.parse import urlencode

from oauthgate.core.claims import normalize_profile
from oauthgate.core.errors import (
    REGISTRATION_PATH,
    BackendRelayFailed,
    GatewayError,
    InternalDirectoryError,
    ProviderAuthFailed,
)
from oauthgate.core.logging import get_logger
from oauthgate.core.relay import DEFAULT_FAILURE_MESSAGE, BackendRelay
from oauthgate.core.resolver import SessionIdentity, SessionResolver
from oauthgate.schemas.relay import RelayResponse

logger = get_logger(__name__)

DASHBOARD_PATH = "/dashboard"
ERROR_PATH = "/auth/error"


class DispatchState(str, Enum):
    EXCHANGING = "exchanging"
    CLAIM_NORMALIZED = "claim_normalized"
    DIRECTORY_RESOLVED = "directory_resolved"
    RELAYING = "relaying"
    REDIRECTING = "redirecting"
    FAILED = "failed"


class OAuthProvider(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def authorization_url(self, state: str) -> str: ...

    async def exchange(self, code: str) -> Any: ...


@dataclass(frozen=True)
class DispatchOutcome:
    redirect_url: str
    state: DispatchState
    identity: SessionIdentity | None = None
    relay: RelayResponse | None = None
    error: GatewayError | None = None

    @property
    def succeeded(self) -> bool:
        return self.identity is not None and self.error is None


def redirect_target(
    client_url: str,
    *,
    is_new_user: bool,
    is_registration_complete: bool,
    relay: RelayResponse | None = None,
) -> str:
    """Pick the post-login destination for a resolved identity."""
    params: dict[str, str] = {}
    if is_new_user or not is_registration_complete:
        path = REGISTRATION_PATH
        if is_new_user:
            params["new"] = "true"
    else:
        path = DASHBOARD_PATH
        params["login"] = "success"

    if relay is not None:
        if relay.token:
            params["token"] = relay.token
        if relay.user is not None:
            params["user"] = json.dumps(relay.user, separators=(",", ":"))

    url = f"{client_url.rstrip('/')}{path}"
    return f"{url}?{urlencode(params)}" if params else url


def error_target(client_url: str, message: str) -> str:
    return f"{client_url.rstrip('/')}{ERROR_PATH}?{urlencode({'message': message})}"


class CallbackDispatcher:
    def __init__(
        self,
        provider: OAuthProvider,
        resolver: SessionResolver,
        *,
        client_url: str,
        relay: BackendRelay | None = None,
    ) -> None:
        self._provider = provider
        self._resolver = resolver
        self._relay = relay
        self.client_url = client_url

    def fail(self, error: GatewayError) -> DispatchOutcome:
        message = error.message or DEFAULT_FAILURE_MESSAGE
        return DispatchOutcome(
            redirect_url=error_target(self.client_url, message),
            state=DispatchState.FAILED,
            error=error,
        )

    def dispatch_denied(self, reason: str | None = None) -> DispatchOutcome:
        """Outcome for a provider-reported denial (``?error=access_denied``)."""
        logger.info("Identity provider denied authorization", reason=reason)
        return self.fail(ProviderAuthFailed("Google sign-in was cancelled or denied"))

    async def _rollback_first_login(self, identity: SessionIdentity) -> None:
        # A retry after a failed relay must still be treated as the first sign-in
        try:
            await self._resolver.abandon(identity)
        except Exception:
            logger.exception("Could not roll back first login", provider_id=identity.provider_id)

    async def dispatch(self, code: str) -> DispatchOutcome:
        state = DispatchState.EXCHANGING
        try:
            grant = await self._provider.exchange(code)
            claim = normalize_profile(grant.profile, grant.access_token)
            state = DispatchState.CLAIM_NORMALIZED
        except ProviderAuthFailed as exc:
            logger.warning("OAuth callback failed", state=state.value, reason=str(exc))
            return self.fail(exc)
        except Exception:
            logger.exception("OAuth grant exchange crashed", state=state.value)
            return self.fail(ProviderAuthFailed())

        try:
            identity = await self._resolver.resolve_claim(claim)
            state = DispatchState.DIRECTORY_RESOLVED
        except GatewayError as exc:
            logger.error("Directory resolution failed", state=state.value, error=str(exc))
            return self.fail(InternalDirectoryError("Could not sign you in, please retry"))
        except Exception:
            logger.exception("Directory resolution failed", state=state.value)
            return self.fail(InternalDirectoryError("Could not sign you in, please retry"))

        relay_result: RelayResponse | None = None
        is_new_user = identity.is_new_user
        if self._relay is not None:
            state = DispatchState.RELAYING
            try:
                relay_result = await self._relay.relay(claim)
            except BackendRelayFailed as exc:
                logger.warning("OAuth callback failed", state=state.value, reason=str(exc))
                await self._rollback_first_login(identity)
                return self.fail(exc)
            if relay_result.is_new_user is not None:
                is_new_user = relay_result.is_new_user

        url = redirect_target(
            self.client_url,
            is_new_user=is_new_user,
            is_registration_complete=identity.is_registration_complete,
            relay=relay_result,
        )
        return DispatchOutcome(
            redirect_url=url,
            state=DispatchState.REDIRECTING,
            identity=identity,
            relay=relay_result,
        )
