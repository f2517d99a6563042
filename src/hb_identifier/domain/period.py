"""Period key derivation."""

from datetime import datetime, tzinfo

from src.hb_identifier.domain.models import ScopeKey


def derive_scope(
    reference_time: datetime,
    tz: tzinfo,
    tenant_id: str | None = None,
) -> ScopeKey:
    """Scope for an allocation made at reference_time.

    Aware datetimes are converted to tz first; naive ones are read as
    already being in tz.
    """
    if reference_time.tzinfo is not None:
        reference_time = reference_time.astimezone(tz)
    return ScopeKey(tenant_id=tenant_id, period=f"{reference_time.year:04d}{reference_time.month:02d}")
