"""Tests for hb_identifier.domain.period."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from src.hb_identifier.domain.period import derive_scope

UTC = timezone.utc


class TestDeriveScope:
    def test_month_is_zero_padded(self) -> None:
        scope = derive_scope(datetime(2025, 3, 15, 12, 0), UTC)
        assert scope.period == "202503"

    def test_last_second_of_month(self) -> None:
        assert derive_scope(datetime(2025, 11, 30, 23, 59, 59), UTC).period == "202511"

    def test_first_second_of_next_month(self) -> None:
        assert derive_scope(datetime(2025, 12, 1, 0, 0, 1), UTC).period == "202512"

    def test_year_rollover(self) -> None:
        assert derive_scope(datetime(2025, 12, 31, 23, 59, 59), UTC).period == "202512"
        assert derive_scope(datetime(2026, 1, 1, 0, 0, 0), UTC).period == "202601"

    def test_aware_time_converted_to_period_timezone(self) -> None:
        # 2025-12-01 02:00 UTC is still November in New York
        reference = datetime(2025, 12, 1, 2, 0, tzinfo=UTC)
        assert derive_scope(reference, ZoneInfo("America/New_York")).period == "202511"
        assert derive_scope(reference, UTC).period == "202512"

    def test_aware_time_with_offset(self) -> None:
        reference = datetime(2025, 11, 30, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert derive_scope(reference, UTC).period == "202512"

    def test_tenant_passed_through(self) -> None:
        scope = derive_scope(datetime(2025, 11, 1), UTC, tenant_id="clinic-a")
        assert scope.tenant_id == "clinic-a"
        assert derive_scope(datetime(2025, 11, 1), UTC).tenant_id is None
