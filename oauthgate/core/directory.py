"""User directory: records keyed by the identity provider's user id.

The gateway talks to the directory only through :class:`UserDirectory`, so the
in-memory store below can be replaced by the SQL-backed one
(:mod:`oauthgate.core.sql_directory`) without touching callers.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Protocol

from oauthgate.core.claims import IdentityClaim
from oauthgate.core.errors import MissingRequiredField, UserNotFound
from oauthgate.core.logging import get_logger

logger = get_logger(__name__)

REQUIRED_PROFILE_FIELDS = ("phone",)
OPTIONAL_PROFILE_FIELDS = ("date_of_birth", "address", "preferences")
PROFILE_FIELDS = REQUIRED_PROFILE_FIELDS + OPTIONAL_PROFILE_FIELDS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserRecord:
    provider_id: str
    email: str
    display_name: str
    picture_url: str | None
    access_token: str
    created_at: datetime
    last_login_at: datetime
    is_registration_complete: bool = False
    registration_completed_at: datetime | None = None

    # Profile completion bag, optional until registration completes
    phone: str | None = None
    date_of_birth: date | None = None
    address: dict[str, Any] | str | None = None
    preferences: dict[str, Any] | None = field(default=None)

    def __repr__(self) -> str:
        return (
            f"<UserRecord {self.provider_id!r} email={self.email!r} "
            f"complete={self.is_registration_complete}>"
        )


def check_required_fields(fields: Mapping[str, Any]) -> None:
    """Raise MissingRequiredField for the first absent or blank mandatory field."""
    for name in REQUIRED_PROFILE_FIELDS:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MissingRequiredField(name)


def apply_completion(record: UserRecord, fields: Mapping[str, Any], now: datetime) -> None:
    """Merge profile fields into *record* and mark registration complete (one-way)."""
    for name in PROFILE_FIELDS:
        if fields.get(name) is not None:
            setattr(record, name, fields[name])
    if isinstance(record.phone, str):
        record.phone = record.phone.strip()
    if not record.is_registration_complete:
        record.registration_completed_at = now
    record.is_registration_complete = True


class UserDirectory(Protocol):
    async def lookup(self, provider_id: str) -> UserRecord | None: ...

    async def upsert_on_login(self, claim: IdentityClaim) -> tuple[UserRecord, bool]: ...

    async def complete_registration(
        self, provider_id: str, fields: Mapping[str, Any]
    ) -> UserRecord: ...

    async def discard(self, provider_id: str, *, last_login_at: datetime) -> bool: ...

    async def all(self) -> list[UserRecord]: ...


class InMemoryUserDirectory:
    """Process-local directory; contents are lost on restart.

    Writes go through a single lock so that two callbacks for the same
    provider id cannot both observe "no record" and create one each.
    Records handed out are copies.
    """

    def __init__(self) -> None:
        self._records: dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    async def lookup(self, provider_id: str) -> UserRecord | None:
        record = self._records.get(provider_id)
        return copy.deepcopy(record) if record is not None else None

    async def upsert_on_login(self, claim: IdentityClaim) -> tuple[UserRecord, bool]:
        async with self._lock:
            now = utcnow()
            record = self._records.get(claim.provider_id)
            if record is None:
                record = UserRecord(
                    provider_id=claim.provider_id,
                    email=claim.email,
                    display_name=claim.display_name,
                    picture_url=claim.picture_url,
                    access_token=claim.access_token,
                    created_at=now,
                    last_login_at=now,
                )
                self._records[claim.provider_id] = record
                is_new = True
                logger.info("User record created", provider_id=claim.provider_id)
            else:
                record.access_token = claim.access_token
                record.last_login_at = now
                is_new = False
            return copy.deepcopy(record), is_new

    async def complete_registration(
        self, provider_id: str, fields: Mapping[str, Any]
    ) -> UserRecord:
        check_required_fields(fields)
        async with self._lock:
            record = self._records.get(provider_id)
            if record is None:
                raise UserNotFound()
            apply_completion(record, fields, utcnow())
            return copy.deepcopy(record)

    async def discard(self, provider_id: str, *, last_login_at: datetime) -> bool:
        """Remove an unregistered record untouched since *last_login_at*.

        Undoes the record a first sign-in created when that sign-in did not
        complete. A later login or a finished registration keeps the record.
        """
        async with self._lock:
            record = self._records.get(provider_id)
            if (
                record is None
                or record.is_registration_complete
                or record.last_login_at != last_login_at
            ):
                return False
            del self._records[provider_id]
            logger.info("User record discarded", provider_id=provider_id)
            return True

    async def all(self) -> list[UserRecord]:
        records = sorted(self._records.values(), key=lambda r: r.created_at)
        return [copy.deepcopy(r) for r in records]

    def __len__(self) -> int:
        return len(self._records)
