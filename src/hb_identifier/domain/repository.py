"""Protocols the allocator depends on — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_identifier.domain.models import ScopeKey


class SequenceQueryProtocol(Protocol):
    async def query_max_sequence(
        self,
        db: AsyncSession,
        scope: ScopeKey,
    ) -> int | None:
        """Highest allocated sequence in scope, or None for an empty scope.

        Raises StoreUnavailableError when the store cannot be read.
        """
        ...


class ScopeLockProtocol(Protocol):
    def hold(self, key: str) -> AbstractAsyncContextManager[bool]:
        """Serialise allocations for key; yields whether the lock was taken."""
        ...
