"""Tests for quotaprobe.probes.models module."""

from dataclasses import FrozenInstanceError
from datetime import timezone

import pytest

from quotaprobe.probes.models import QuotaType, RateLimitWindow, UsageQuota, UsageSnapshot


class TestQuotaType:
    """Tests for QuotaType enum."""

    def test_display_names(self):
        assert QuotaType.SESSION.display_name == "Session"
        assert QuotaType.WEEKLY.display_name == "Weekly"


class TestUsageQuota:
    """Tests for UsageQuota dataclass."""

    @pytest.mark.parametrize(
        ("given", "expected"),
        [(-30.0, 0.0), (0.0, 0.0), (42.5, 42.5), (100.0, 100.0), (150.0, 100.0)],
    )
    def test_percent_clamped(self, given, expected):
        """percent_remaining always lands in [0, 100]."""
        quota = UsageQuota(percent_remaining=given, quota_type=QuotaType.SESSION, provider_id="codex")
        assert quota.percent_remaining == expected

    def test_is_frozen(self):
        quota = UsageQuota(percent_remaining=50, quota_type=QuotaType.WEEKLY, provider_id="codex")
        with pytest.raises(FrozenInstanceError):
            quota.percent_remaining = 10  # type: ignore[misc]

    def test_reset_text_defaults_to_none(self):
        quota = UsageQuota(percent_remaining=50, quota_type=QuotaType.WEEKLY, provider_id="codex")
        assert quota.reset_text is None


class TestUsageSnapshot:
    """Tests for UsageSnapshot dataclass."""

    def _snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            provider_id="codex",
            quotas=[
                UsageQuota(70, QuotaType.SESSION, "codex"),
                UsageQuota(12, QuotaType.WEEKLY, "codex"),
            ],
        )

    def test_quotas_stored_as_tuple(self):
        """A list of quotas is frozen into a tuple, order preserved."""
        snapshot = self._snapshot()
        assert isinstance(snapshot.quotas, tuple)
        assert [q.quota_type for q in snapshot.quotas] == [QuotaType.SESSION, QuotaType.WEEKLY]

    def test_captured_at_is_utc(self):
        snapshot = self._snapshot()
        assert snapshot.captured_at.tzinfo is timezone.utc

    def test_quota_lookup(self):
        snapshot = self._snapshot()
        assert snapshot.quota(QuotaType.WEEKLY).percent_remaining == 12
        assert UsageSnapshot("codex", ()).quota(QuotaType.SESSION) is None

    def test_lowest_quota(self):
        """lowest_quota picks the smallest remaining percentage."""
        assert self._snapshot().lowest_quota.quota_type is QuotaType.WEEKLY
        assert UsageSnapshot("codex", ()).lowest_quota is None


class TestRateLimitWindow:
    """Tests for RateLimitWindow.to_quota."""

    def test_converts_used_to_remaining(self):
        window = RateLimitWindow(used_percent=30, reset_description="Resets in 1h 0m")
        quota = window.to_quota(QuotaType.SESSION, "codex")

        assert quota.percent_remaining == 70
        assert quota.quota_type is QuotaType.SESSION
        assert quota.provider_id == "codex"
        assert quota.reset_text == "Resets in 1h 0m"

    def test_overused_window_floors_at_zero(self):
        """usedPercent above 100 never yields a negative remainder."""
        quota = RateLimitWindow(used_percent=130).to_quota(QuotaType.WEEKLY, "codex")
        assert quota.percent_remaining == 0
