"""SQLAlchemy-backed user directory.

Drop-in replacement for :class:`~oauthgate.core.directory.InMemoryUserDirectory`
selected by ``DATABASE_URL``. Uniqueness of ``provider_id`` is enforced by the
primary key; a duplicate insert from another process falls back to the
update path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from oauthgate.core.claims import IdentityClaim
from oauthgate.core.directory import (
    UserRecord,
    apply_completion,
    check_required_fields,
    utcnow,
)
from oauthgate.core.errors import UserNotFound
from oauthgate.core.logging import get_logger
from oauthgate.models.base import Base
from oauthgate.models.user import User

logger = get_logger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: User) -> UserRecord:
    return UserRecord(
        provider_id=row.provider_id,
        email=row.email,
        display_name=row.display_name,
        picture_url=row.picture_url,
        access_token=row.access_token,
        created_at=_aware(row.created_at),
        last_login_at=_aware(row.last_login_at),
        is_registration_complete=row.is_registration_complete,
        registration_completed_at=_aware(row.registration_completed_at),
        phone=row.phone,
        date_of_birth=row.date_of_birth,
        address=row.address,
        preferences=row.preferences,
    )


class SqlUserDirectory:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._factory = async_sessionmaker(engine, expire_on_commit=False)
        self._lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "SqlUserDirectory":
        return cls(create_async_engine(database_url, echo=False))

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    async def lookup(self, provider_id: str) -> UserRecord | None:
        async with self._factory() as session:
            row = await session.get(User, provider_id)
            return _to_record(row) if row is not None else None

    async def upsert_on_login(self, claim: IdentityClaim) -> tuple[UserRecord, bool]:
        async with self._lock:
            now = utcnow()
            async with self._factory() as session:
                row = await session.get(User, claim.provider_id)
                if row is None:
                    row = User(
                        provider_id=claim.provider_id,
                        email=claim.email,
                        display_name=claim.display_name,
                        picture_url=claim.picture_url,
                        access_token=claim.access_token,
                        created_at=now,
                        last_login_at=now,
                        is_registration_complete=False,
                    )
                    session.add(row)
                    try:
                        await session.commit()
                    except IntegrityError:
                        # Created concurrently elsewhere; treat as a login
                        await session.rollback()
                    else:
                        logger.info("User record created", provider_id=claim.provider_id)
                        return _to_record(row), True
                    row = await session.get(User, claim.provider_id)
                    if row is None:
                        raise UserNotFound()

                row.access_token = claim.access_token
                row.last_login_at = now
                await session.commit()
                return _to_record(row), False

    async def complete_registration(
        self, provider_id: str, fields: Mapping[str, Any]
    ) -> UserRecord:
        check_required_fields(fields)
        async with self._lock:
            async with self._factory() as session:
                row = await session.get(User, provider_id)
                if row is None:
                    raise UserNotFound()
                record = _to_record(row)
                apply_completion(record, fields, utcnow())
                row.phone = record.phone
                row.date_of_birth = record.date_of_birth
                row.address = record.address
                row.preferences = record.preferences
                row.is_registration_complete = True
                row.registration_completed_at = record.registration_completed_at
                await session.commit()
                return record

    async def discard(self, provider_id: str, *, last_login_at: datetime) -> bool:
        async with self._lock:
            async with self._factory() as session:
                row = await session.get(User, provider_id)
                if (
                    row is None
                    or row.is_registration_complete
                    or _aware(row.last_login_at) != last_login_at
                ):
                    return False
                await session.delete(row)
                await session.commit()
                logger.info("User record discarded", provider_id=provider_id)
                return True

    async def all(self) -> list[UserRecord]:
        async with self._factory() as session:
            result = await session.execute(select(User).order_by(User.created_at))
            return [_to_record(row) for row in result.scalars().all()]
