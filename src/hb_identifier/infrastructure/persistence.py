"""SequenceQueryRepository — reads the highest allocated sequence in a scope.

Raw text() SQL against the patients table. Rows are scanned newest-first in
pages so a malformed identifier at the top of the scope cannot hide the
real maximum.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.errors import IdentifierFormatError, StoreUnavailableError
from src.hb_identifier.domain.codec import IdentifierCodec
from src.hb_identifier.domain.models import ScopeKey

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

# COLLATE "C" keeps the ordering bytewise regardless of the database locale.
_SCAN_SCOPE_IDS_SQL = text("""
    SELECT patient_id
    FROM patients
    WHERE id_scope = :id_scope
      AND patient_id LIKE :pattern ESCAPE '\\'
    ORDER BY patient_id COLLATE "C" DESC
    LIMIT :limit OFFSET :offset
""")


def like_prefix_pattern(prefix: str) -> str:
    """LIKE pattern matching values that start with prefix literally."""
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class SequenceQueryRepository:
    """Concrete SequenceQueryProtocol — read-only."""

    def __init__(self, codec: IdentifierCodec, batch_size: int = 20) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._codec = codec
        self._batch_size = batch_size

    async def query_max_sequence(
        self, db: AsyncSession, scope: ScopeKey
    ) -> int | None:
        expected = self._codec.scope_prefix(scope)
        params = {
            "id_scope": scope.id_scope,
            "pattern": like_prefix_pattern(expected),
            "limit": self._batch_size,
        }
        offset = 0
        while True:
            rows = await self._fetch_page(db, {**params, "offset": offset})
            for row in rows:
                try:
                    sequence = self._codec.decode(row.patient_id, expected)
                except IdentifierFormatError:
                    logger.warning(
                        "Skipping malformed patient id %r in scope %s",
                        row.patient_id,
                        expected,
                    )
                    continue
                if sequence is not None:
                    return sequence
            if len(rows) < self._batch_size:
                return None
            offset += self._batch_size

    async def _fetch_page(self, db: AsyncSession, params: dict) -> list:
        try:
            result = await db.execute(_SCAN_SCOPE_IDS_SQL, params)
        except (DBAPIError, PoolTimeoutError, OSError, TimeoutError) as exc:
            raise StoreUnavailableError(str(exc)) from exc
        return list(result.fetchall())
