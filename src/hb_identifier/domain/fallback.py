"""Degraded identifier issuance for when the sequence cannot be trusted.

The suffix is the low-order digits of a millisecond wall-clock timestamp,
padded to the normal sequence width so degraded identifiers stay format
compatible. Collisions are unlikely but possible; every degraded issue is
logged at WARNING so operators can reconcile later.
"""

import logging
import threading
from collections.abc import Callable

from src.hb_common.datetime_utils import epoch_ms
from src.hb_identifier.domain.codec import IdentifierCodec
from src.hb_identifier.domain.models import DegradeReason, PatientIdentifier, ScopeKey

logger = logging.getLogger(__name__)


class TimestampSuffixGenerator:
    """Millisecond suffixes that never repeat back-to-back within a process.

    If the clock has not advanced (or went backwards) since the last call,
    the previous timestamp is bumped by one instead.
    """

    def __init__(self, width: int, clock: Callable[[], int] = epoch_ms) -> None:
        self._modulus = 10**width
        self._clock = clock
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_suffix(self) -> int:
        with self._lock:
            ts = self._clock()
            if ts <= self._last_ms:
                ts = self._last_ms + 1
            self._last_ms = ts
            return ts % self._modulus


class DegradationFallback:
    def __init__(
        self,
        codec: IdentifierCodec,
        generator: TimestampSuffixGenerator | None = None,
    ) -> None:
        self._codec = codec
        self._generator = generator or TimestampSuffixGenerator(codec.width)

    def fallback(self, scope: ScopeKey, reason: DegradeReason) -> PatientIdentifier:
        suffix = self._generator.next_suffix()
        value = self._codec.encode(scope, suffix)
        logger.warning(
            "Issued degraded patient id %s (scope=%s reason=%s); reconcile later",
            value,
            scope.id_scope or "*",
            reason.value,
        )
        return PatientIdentifier(
            value=value,
            scope=scope,
            sequence=suffix,
            degraded=True,
            degrade_reason=reason,
        )
