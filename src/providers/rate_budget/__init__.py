"""Request budget stores for rate-limited image providers."""

from src.providers.rate_budget.sqlite_rate_budget_store import SQLiteRateBudgetStore

__all__ = ["SQLiteRateBudgetStore"]
