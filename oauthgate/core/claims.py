"""Identity claim normalization.

Google profiles arrive in the passport-style shape::

    {
        "id": "1098...",
        "displayName": "Ada Lovelace",
        "emails": [{"value": "ada@example.com", "verified": true}],
        "photos": [{"value": "https://..."}],
    }

and are reduced to an :class:`IdentityClaim`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from oauthgate.core.errors import MalformedProfile


@dataclass(frozen=True)
class IdentityClaim:
    provider_id: str
    email: str
    display_name: str
    picture_url: str | None
    access_token: str

    def __repr__(self) -> str:
        # access_token stays out of logs and tracebacks
        return f"<IdentityClaim {self.provider_id!r} email={self.email!r}>"


def _first_value(entries: Any, *, verified_only: bool = False) -> str | None:
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if verified_only and entry.get("verified") is False:
            continue
        value = entry.get("value")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_profile(profile: dict[str, Any], access_token: str) -> IdentityClaim:
    """Build a claim from a provider profile, raising MalformedProfile if unusable."""
    if not isinstance(profile, dict):
        raise MalformedProfile("Identity provider returned no profile")

    raw_id = profile.get("id")
    provider_id = str(raw_id).strip() if raw_id is not None else ""
    if not provider_id:
        raise MalformedProfile("Identity provider returned no stable identity")

    email = _first_value(profile.get("emails"), verified_only=True)
    if not email:
        raise MalformedProfile("Identity provider returned no verified email address")

    display_name = profile.get("displayName")
    if not isinstance(display_name, str) or not display_name.strip():
        display_name = email

    return IdentityClaim(
        provider_id=provider_id,
        email=email,
        display_name=display_name.strip(),
        picture_url=_first_value(profile.get("photos")),
        access_token=access_token,
    )
