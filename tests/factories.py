"""Test doubles and builders shared by the test modules."""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlparse

from httpx import AsyncClient

from oauthgate.core.claims import IdentityClaim
from oauthgate.core.errors import ProviderAuthFailed
from oauthgate.core.provider import ProviderGrant

CLIENT_URL = "http://frontend.test"


def google_profile(
    provider_id: str = "g-1",
    email: str = "a@x.com",
    name: str | None = "Ada",
    picture: str | None = "https://img.test/ada.png",
) -> dict[str, Any]:
    return {
        "id": provider_id,
        "displayName": name,
        "emails": [{"value": email, "verified": True}],
        "photos": [{"value": picture}] if picture else [],
    }


def make_claim(provider_id: str = "g-1", email: str = "a@x.com", token: str = "tok-1"):
    return IdentityClaim(
        provider_id=provider_id,
        email=email,
        display_name="Ada",
        picture_url=None,
        access_token=token,
    )


class FakeProvider:
    """Stands in for Google: each authorization code maps to a profile."""

    is_configured = True

    def __init__(self) -> None:
        self.profiles: dict[str, dict[str, Any]] = {
            "code-g1": google_profile(),
            "code-g2": google_profile("g-2", "b@x.com", name="Bob"),
            "code-noemail": {"id": "g-3", "displayName": "Nobody", "emails": []},
        }
        self.exchanged: list[str] = []

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.test/o/oauth2/auth?state={state}"

    async def exchange(self, code: str) -> ProviderGrant:
        self.exchanged.append(code)
        if code not in self.profiles:
            raise ProviderAuthFailed("Google rejected the authorization code")
        return ProviderGrant(access_token=f"at-{code}", profile=self.profiles[code])


async def sign_in(client: AsyncClient, code: str = "code-g1"):
    """Run the redirect flow and return the callback response."""
    start = await client.get("/auth/google")
    assert start.status_code == 302
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]
    return await client.get("/auth/google/callback", params={"code": code, "state": state})


def query_of(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}
