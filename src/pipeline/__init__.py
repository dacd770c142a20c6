"""Background pipeline components for photo enrichment."""

from src.pipeline.scheduler import EnrichmentScheduler

__all__ = ["EnrichmentScheduler"]
