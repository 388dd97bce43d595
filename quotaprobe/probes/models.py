"""Usage quota data model.

A probe produces one UsageSnapshot per successful run. Snapshots are
immutable; the next probe supersedes rather than updates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class QuotaType(Enum):
    """Kind of rate-limit window a quota describes."""

    SESSION = "session"
    WEEKLY = "weekly"

    @property
    def display_name(self) -> str:
        """Human-readable name ("Session", "Weekly")."""
        return self.value.capitalize()


@dataclass(frozen=True)
class UsageQuota:
    """Remaining budget for one rate-limit window.

    percent_remaining is clamped into [0, 100] on construction, so upstream
    figures like ``100 - 130`` never leak out as negative percentages.

    Attributes:
        percent_remaining: Remaining share of the window, 0-100
        quota_type: Which window this is
        provider_id: Provider the quota belongs to (e.g. "codex")
        reset_text: Human-readable reset hint, if known
    """

    percent_remaining: float
    quota_type: QuotaType
    provider_id: str
    reset_text: str | None = None

    def __post_init__(self) -> None:
        clamped = min(100.0, max(0.0, float(self.percent_remaining)))
        object.__setattr__(self, "percent_remaining", clamped)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UsageSnapshot:
    """All quotas of one provider at one point in time.

    Attributes:
        provider_id: Provider the snapshot belongs to
        quotas: Quotas in the order the provider reports them
        captured_at: When the snapshot was taken (UTC)
    """

    provider_id: str
    quotas: tuple[UsageQuota, ...]
    captured_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "quotas", tuple(self.quotas))

    def quota(self, quota_type: QuotaType) -> UsageQuota | None:
        """Return the quota of the given type, if present."""
        for quota in self.quotas:
            if quota.quota_type is quota_type:
                return quota
        return None

    @property
    def lowest_quota(self) -> UsageQuota | None:
        """The quota with the least remaining budget."""
        if not self.quotas:
            return None
        return min(self.quotas, key=lambda q: q.percent_remaining)


@dataclass(frozen=True)
class RateLimitWindow:
    """One rate-limit window as reported over RPC, before conversion."""

    used_percent: float
    reset_description: str | None = None

    def to_quota(self, quota_type: QuotaType, provider_id: str) -> UsageQuota:
        """Convert used percentage into a remaining-budget quota."""
        return UsageQuota(
            percent_remaining=max(0.0, 100.0 - self.used_percent),
            quota_type=quota_type,
            provider_id=provider_id,
            reset_text=self.reset_description,
        )


__all__ = [
    "QuotaType",
    "RateLimitWindow",
    "UsageQuota",
    "UsageSnapshot",
]
