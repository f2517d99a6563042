"""Domain models for hb_identifier — pure dataclasses, no I/O."""

from dataclasses import dataclass
from enum import Enum


class DegradeReason(str, Enum):
    """Why an identifier was issued outside the normal sequence."""

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    SEQUENCE_OVERFLOW = "SEQUENCE_OVERFLOW"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"


@dataclass(frozen=True)
class ScopeKey:
    """Partition within which sequence numbers are unique.

    period is a YYYYMM token. tenant_id is None when numbering is shared by
    every tenant in the store.
    """

    tenant_id: str | None
    period: str

    def __post_init__(self) -> None:
        p = self.period
        if len(p) != 6 or not (p.isascii() and p.isdigit()) or not 1 <= int(p[4:]) <= 12:
            raise ValueError(f"period must be YYYYMM, got {p!r}")

    @property
    def id_scope(self) -> str:
        """Value stored in patients.id_scope; '' means global numbering."""
        return self.tenant_id or ""


@dataclass(frozen=True)
class PatientIdentifier:
    value: str
    scope: ScopeKey
    sequence: int
    degraded: bool = False
    degrade_reason: DegradeReason | None = None

    def __str__(self) -> str:
        return self.value
