"""Backend-of-record relay.

Sends the verified identity claim to the backend that owns durable accounts
and issues application tokens::

    POST {BACKEND_URL}/api/auth/google-callback
    {"googleId", "email", "name", "picture", "accessToken"}
    -> {"success", "token", "user", "isNewUser", "message"}

Any timeout, transport error, non-2xx status or ``success: false`` raises
:class:`BackendRelayFailed`. There is no retry.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from oauthgate.core.claims import IdentityClaim
from oauthgate.core.errors import BackendRelayFailed
from oauthgate.core.logging import get_logger
from oauthgate.schemas.relay import RelayRequest, RelayResponse

logger = get_logger(__name__)

RELAY_PATH = "/api/auth/google-callback"
DEFAULT_FAILURE_MESSAGE = "Authentication failed"


class BackendRelay:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def relay(self, claim: IdentityClaim) -> RelayResponse:
        payload = RelayRequest(
            google_id=claim.provider_id,
            email=claim.email,
            name=claim.display_name,
            picture=claim.picture_url,
            access_token=claim.access_token,
        ).model_dump(by_alias=True)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(RELAY_PATH, json=payload)
        except httpx.TimeoutException:
            logger.warning("Backend relay timed out", timeout=self.timeout)
            raise BackendRelayFailed(DEFAULT_FAILURE_MESSAGE)
        except httpx.HTTPError as exc:
            logger.warning("Backend relay unreachable", error=str(exc))
            raise BackendRelayFailed(DEFAULT_FAILURE_MESSAGE)

        try:
            result = RelayResponse.model_validate(resp.json())
        except (ValueError, ValidationError):
            logger.warning("Backend relay returned invalid JSON", status=resp.status_code)
            raise BackendRelayFailed(DEFAULT_FAILURE_MESSAGE)

        if resp.is_error or not result.success:
            logger.warning(
                "Backend relay rejected login",
                status=resp.status_code,
                backend_message=result.message,
            )
            raise BackendRelayFailed(result.message or DEFAULT_FAILURE_MESSAGE)

        return result
