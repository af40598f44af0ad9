"""Google OAuth 2.0 client.

Only two capabilities are used: building the authorization redirect and
exchanging the returned authorization code for an access token plus a
profile. The userinfo response is reshaped into the passport-style profile
that :func:`oauthgate.core.claims.normalize_profile` consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from oauthgate.core.config import Settings
from oauthgate.core.errors import ProviderAuthFailed
from oauthgate.core.logging import get_logger

logger = get_logger(__name__)

SCOPES = ("openid", "email", "profile")


@dataclass(frozen=True)
class ProviderGrant:
    access_token: str
    profile: dict[str, Any]


def userinfo_to_profile(info: dict[str, Any]) -> dict[str, Any]:
    """Map an OpenID userinfo document to the passport-style profile shape."""
    profile: dict[str, Any] = {
        "id": info.get("sub"),
        "displayName": info.get("name"),
        "emails": [],
        "photos": [],
    }
    if info.get("email"):
        verified = info.get("email_verified", True)
        if isinstance(verified, str):
            verified = verified.lower() == "true"
        profile["emails"].append({"value": info["email"], "verified": bool(verified)})
    if info.get("picture"):
        profile["photos"].append({"value": info["picture"]})
    return profile


class GoogleOAuthProvider:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.google_client_id and self._settings.google_client_secret)

    def authorization_url(self, state: str) -> str:
        s = self._settings
        params = {
            "client_id": s.google_client_id,
            "redirect_uri": s.google_callback_url,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "prompt": "select_account",
        }
        return f"{s.google_authorize_url}?{urlencode(params)}"

    async def exchange(self, code: str) -> ProviderGrant:
        """Exchange an authorization code. Raises ProviderAuthFailed."""
        s = self._settings
        try:
            async with httpx.AsyncClient(
                timeout=s.google_timeout_seconds, transport=self._transport
            ) as client:
                token_resp = await client.post(
                    s.google_token_url,
                    data={
                        "code": code,
                        "client_id": s.google_client_id,
                        "client_secret": s.google_client_secret,
                        "redirect_uri": s.google_callback_url,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
                if token_resp.is_error:
                    logger.warning(
                        "Google token exchange rejected",
                        status=token_resp.status_code,
                        body=token_resp.text[:200],
                    )
                    raise ProviderAuthFailed("Google rejected the authorization code")

                token_data = token_resp.json()
                access_token = (
                    token_data.get("access_token") if isinstance(token_data, dict) else None
                )
                if not access_token:
                    raise ProviderAuthFailed("Google returned no access token")

                info_resp = await client.get(
                    s.google_userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                info_resp.raise_for_status()
                info = info_resp.json()
        except httpx.TimeoutException:
            raise ProviderAuthFailed("Google did not respond in time")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Google token exchange failed", error=str(exc))
            raise ProviderAuthFailed("Could not complete Google sign-in")

        if not isinstance(info, dict):
            raise ProviderAuthFailed("Google returned an unexpected profile")
        return ProviderGrant(access_token=access_token, profile=userinfo_to_profile(info))
