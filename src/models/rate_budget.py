"""Request budget model for rate-limited image providers.

A :class:`RateBudget` is a small stand-alone document (one per provider)
holding a fixed-window request counter.  It lives in the shared store
rather than in process memory so that independent worker invocations see
the same count.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict


class RateBudget(BaseModel):
    """Fixed-window request counter for one provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    window_start: datetime
    count: int = 0
    limit: int
    window_seconds: int
    last_request: datetime | None = None

    @property
    def window_end(self) -> datetime:
        return self.window_start + timedelta(seconds=self.window_seconds)

    def window_expired(self, now: datetime) -> bool:
        return now >= self.window_end

    def is_exhausted(self, now: datetime) -> bool:
        """Return ``True`` if no request may be made in the current window."""
        if self.window_expired(now):
            return False
        return self.count >= self.limit

    def remaining(self, now: datetime) -> int:
        if self.window_expired(now):
            return self.limit
        return max(self.limit - self.count, 0)
