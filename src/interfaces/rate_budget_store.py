"""Abstract base class for shared request-budget counters.

Rate-limited image providers keep their request counter in the shared
store so the budget survives across independent, stateless worker
invocations.  The budget is a resource of its own, separate from the
photo cache entries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from src.models.rate_budget import RateBudget


class IRateBudgetStore(ABC):
    """Contract for fixed-window request budgets."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they don't exist.  Called at startup."""

    @abstractmethod
    async def try_acquire(
        self,
        name: str,
        limit: int,
        window_seconds: int,
        now: datetime | None = None,
    ) -> bool:
        """Atomically check the budget and, if allowed, count one request.

        Starts a fresh window when none exists or the current one has
        elapsed.

        Parameters
        ----------
        name:
            Budget identifier, usually the provider name.
        limit:
            Maximum requests per window.
        window_seconds:
            Window length in seconds.
        now:
            Current time; defaults to UTC now.

        Returns
        -------
        bool
            ``True`` if the caller may make one request, ``False`` if the
            budget for the current window is spent.
        """

    @abstractmethod
    async def get(self, name: str) -> RateBudget | None:
        """Return the stored budget for *name*, or ``None``."""
