"""PatientIdAllocator — scoped sequential patient identifiers.

Every call re-reads the highest sequence from the store; nothing is cached
between calls, so several application instances can allocate against the
same database.

allocate() alone is read-then-construct: two concurrent callers can get the
same identifier. Callers that persist the identifier should go through
allocate_and_save(), which retries on the store's unique constraint and
optionally holds a per-scope lock until the write has committed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hb_common.datetime_utils import utc_now
from src.hb_common.errors import (
    SequenceOverflowError,
    StoreUnavailableError,
    UniqueConstraintViolationError,
)
from src.hb_identifier.domain.codec import IdentifierCodec
from src.hb_identifier.domain.fallback import DegradationFallback
from src.hb_identifier.domain.models import DegradeReason, PatientIdentifier, ScopeKey
from src.hb_identifier.domain.period import derive_scope
from src.hb_identifier.domain.repository import ScopeLockProtocol, SequenceQueryProtocol
from src.hb_identifier.infrastructure.persistence import SequenceQueryRepository
from src.hb_identifier.infrastructure.scope_lock import NullScopeLock, RedisScopeLock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PatientIdAllocator:
    def __init__(
        self,
        codec: IdentifierCodec,
        query: SequenceQueryProtocol | None = None,
        fallback: DegradationFallback | None = None,
        scope_lock: ScopeLockProtocol | None = None,
        *,
        tenant_scoped: bool = False,
        timezone_name: str = "UTC",
        query_timeout: float = 3.0,
        max_attempts: int = 5,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._codec = codec
        self._query: SequenceQueryProtocol = query or SequenceQueryRepository(codec)
        self._fallback = fallback or DegradationFallback(codec)
        self._scope_lock: ScopeLockProtocol = scope_lock or NullScopeLock()
        self._tenant_scoped = tenant_scoped
        self._tz = ZoneInfo(timezone_name)
        self._query_timeout = query_timeout
        self._max_attempts = max_attempts

    @classmethod
    def from_settings(cls) -> "PatientIdAllocator":
        codec = IdentifierCodec(settings.PATIENT_ID_PREFIX, settings.PATIENT_ID_SEQUENCE_WIDTH)
        scope_lock: ScopeLockProtocol = (
            RedisScopeLock(blocking_timeout=settings.ID_SCOPE_LOCK_TIMEOUT_SECONDS)
            if settings.ID_SCOPE_LOCK_ENABLED
            else NullScopeLock()
        )
        return cls(
            codec,
            query=SequenceQueryRepository(codec, settings.ID_SCAN_BATCH_SIZE),
            scope_lock=scope_lock,
            tenant_scoped=settings.ID_TENANT_SCOPED,
            timezone_name=settings.PATIENT_ID_TIMEZONE,
            query_timeout=settings.ID_QUERY_TIMEOUT_SECONDS,
            max_attempts=settings.ID_MAX_ATTEMPTS,
        )

    def derive(self, reference_time: datetime, tenant_id: str | None = None) -> ScopeKey:
        """Scope for reference_time; tenant_id is dropped unless tenant scoping is on."""
        return derive_scope(
            reference_time,
            self._tz,
            tenant_id if self._tenant_scoped else None,
        )

    async def allocate(
        self,
        db: AsyncSession,
        reference_time: datetime | None = None,
        tenant_id: str | None = None,
    ) -> PatientIdentifier:
        """Next identifier for the scope of reference_time (default: now).

        Never raises for store failures or an exhausted period; those return
        a degraded identifier instead. A failed or timed-out query rolls back
        the session's open transaction so the caller can still write with it.
        """
        scope = self.derive(reference_time or utc_now(), tenant_id)
        return await self._allocate_in_scope(db, scope)

    async def allocate_and_save(
        self,
        db: AsyncSession,
        write: Callable[[PatientIdentifier], Awaitable[T]],
        reference_time: datetime | None = None,
        tenant_id: str | None = None,
    ) -> T:
        """Allocate an identifier and persist it through write().

        write() must insert (and commit) the record and raise
        UniqueConstraintViolationError when the identifier is already taken.
        Conflicts re-run the allocation up to max_attempts times, after which
        degraded identifiers are written, again up to max_attempts times.
        Any other error from write() propagates.
        """
        scope = self.derive(reference_time or utc_now(), tenant_id)
        lock_key = f"{scope.id_scope}:{self._codec.scope_prefix(scope)}"
        async with self._scope_lock.hold(lock_key):
            for attempt in range(1, self._max_attempts + 1):
                identifier = await self._allocate_in_scope(db, scope)
                try:
                    return await write(identifier)
                except UniqueConstraintViolationError:
                    logger.info(
                        "Patient id %s already taken (attempt %d/%d), re-allocating",
                        identifier.value,
                        attempt,
                        self._max_attempts,
                    )
            # Each fallback call bumps the suffix; the last attempt's conflict propagates.
            for attempt in range(1, self._max_attempts):
                identifier = self._fallback.fallback(scope, DegradeReason.RETRIES_EXHAUSTED)
                try:
                    return await write(identifier)
                except UniqueConstraintViolationError:
                    logger.warning(
                        "Degraded patient id %s already taken (attempt %d/%d)",
                        identifier.value,
                        attempt,
                        self._max_attempts,
                    )
            return await write(self._fallback.fallback(scope, DegradeReason.RETRIES_EXHAUSTED))

    async def _reset_session(self, db: AsyncSession) -> None:
        # The aborted (or invalidated) transaction must be discarded before the
        # degraded identifier is written through the same session.
        try:
            await db.rollback()
        except SQLAlchemyError as exc:
            logger.warning("Rollback after failed sequence query raised: %s", exc)

    async def _allocate_in_scope(self, db: AsyncSession, scope: ScopeKey) -> PatientIdentifier:
        try:
            current = await asyncio.wait_for(
                self._query.query_max_sequence(db, scope),
                timeout=self._query_timeout,
            )
        except TimeoutError:
            logger.warning(
                "Sequence query for %s timed out after %.1fs",
                self._codec.scope_prefix(scope),
                self._query_timeout,
            )
            await self._reset_session(db)
            return self._fallback.fallback(scope, DegradeReason.STORE_UNAVAILABLE)
        except StoreUnavailableError as exc:
            logger.warning("Sequence query for %s failed: %s", self._codec.scope_prefix(scope), exc.message)
            await self._reset_session(db)
            return self._fallback.fallback(scope, DegradeReason.STORE_UNAVAILABLE)

        next_sequence = 1 if current is None else current + 1
        try:
            value = self._codec.encode(scope, next_sequence)
        except SequenceOverflowError:
            logger.warning(
                "Patient id capacity exhausted for %s (max %d); issuing degraded ids",
                self._codec.scope_prefix(scope),
                self._codec.max_sequence,
            )
            return self._fallback.fallback(scope, DegradeReason.SEQUENCE_OVERFLOW)

        logger.info("Allocated patient id %s", value)
        return PatientIdentifier(value=value, scope=scope, sequence=next_sequence)
