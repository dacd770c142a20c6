# =============================================================================
# src/cli/photo_queue.py - Photo Queue Operator CLI
# =============================================================================
#
# Standalone CLI for inspecting and driving the bird photo cache without
# the API server.  Uses the same SQLite database and image provider
# settings as the server (.env / environment variables, config/config.yaml).
#
# Typical usage:
#   python -m src.cli.photo_queue stats                 # counts by status
#   python -m src.cli.photo_queue list --status FAILED  # inspect entries
#   python -m src.cli.photo_queue run-once              # drain one batch
#   python -m src.cli.photo_queue reset amecro          # re-queue one FAILED entry
#   python -m src.cli.photo_queue schedule              # run the worker loop
#
# `reset` is the only way back into the queue for entries that lookups no
# longer retry (retry budget spent, or skipped as hybrids).
#
# Logging goes to stderr so stdout carries only command output; --json
# switches command output to machine-readable JSON.
# =============================================================================

"""Operator CLI for the bird photo cache and enrichment worker.

Usage::

    python -m src.cli.photo_queue stats
    python -m src.cli.photo_queue list --status PENDING --limit 20
    python -m src.cli.photo_queue run-once --json
    python -m src.cli.photo_queue reset mallar3
    python -m src.cli.photo_queue schedule
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from src.config.loader import WorkerConfig, load_config
from src.config.settings import Settings
from src.models.photo_cache import CacheEntry, PhotoStatus
from src.pipeline.scheduler import EnrichmentScheduler
from src.providers.image.factory import create_image_provider
from src.providers.photo_cache.sqlite_photo_cache_store import SQLitePhotoCacheStore
from src.providers.rate_budget.sqlite_rate_budget_store import SQLiteRateBudgetStore
from src.services.enrichment_worker import EnrichmentWorker
from src.utils.logging import configure_logging
from src.utils.species_names import ebird_species_url


# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


async def _open_store(app_settings: Settings) -> SQLitePhotoCacheStore:
    store = SQLitePhotoCacheStore(db_path=app_settings.photo_cache_db_path)
    await store.initialize()
    return store


async def _build_worker(
    app_settings: Settings,
    worker_config: WorkerConfig,
) -> EnrichmentWorker:
    store = await _open_store(app_settings)
    budget_store = SQLiteRateBudgetStore(db_path=app_settings.photo_cache_db_path)
    await budget_store.initialize()
    provider = create_image_provider(app_settings, budget_store)
    return EnrichmentWorker(
        store=store,
        image_provider=provider,
        batch_size=worker_config.batch_size,
        request_delay=worker_config.request_delay_seconds,
        max_retries=worker_config.max_retries,
        backoff_base_minutes=worker_config.backoff_base_minutes,
    )


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _entry_row(entry: CacheEntry) -> dict[str, Any]:
    return {
        "speciesCode": entry.species_code,
        "status": entry.status.value,
        "comName": entry.com_name,
        "priority": entry.priority,
        "errorCount": entry.error_count,
        "lastError": entry.last_error,
        "updatedAt": entry.updated_at.isoformat(),
        "processAfter": entry.process_after.isoformat() if entry.process_after else None,
        "thumbnailUrl": entry.best_thumbnail,
        "ebirdUrl": ebird_species_url(entry.species_code),
    }


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_stats(args: argparse.Namespace, app_settings: Settings) -> int:
    store = await _open_store(app_settings)
    counts = await store.status_counts()
    if args.json_output:
        _print_json({"counts": counts, "total": sum(counts.values())})
        return 0
    for status, count in counts.items():
        print(f"{status:<11} {count:>6}")
    print(f"{'TOTAL':<11} {sum(counts.values()):>6}")
    return 0


async def _handle_list(args: argparse.Namespace, app_settings: Settings) -> int:
    store = await _open_store(app_settings)
    status = PhotoStatus(args.status) if args.status else None
    entries = await store.list_entries(status=status, limit=args.limit)
    rows = [_entry_row(e) for e in entries]
    if args.json_output:
        _print_json(rows)
        return 0
    if not rows:
        print("No entries.")
        return 0
    for row in rows:
        line = (
            f"{row['speciesCode']:<10} {row['status']:<10} p={row['priority']:<3} "
            f"err={row['errorCount']} {row['comName']}"
        )
        if row["lastError"]:
            line += f"  ({row['lastError']})"
        print(line)
    return 0


async def _handle_run_once(
    args: argparse.Namespace,
    app_settings: Settings,
    worker_config: WorkerConfig,
) -> int:
    worker = await _build_worker(app_settings, worker_config)
    scheduler = EnrichmentScheduler(worker, run_timeout_seconds=worker_config.run_timeout_seconds)
    summary = await scheduler.trigger()
    if args.json_output:
        _print_json(summary.to_dict())
    else:
        print(
            f"Provider {worker.provider_name}: selected {summary.selected}, "
            f"completed {summary.completed}, not found {summary.not_found}, "
            f"skipped {summary.skipped}, deferred {summary.deferred}, "
            f"retry {summary.retried}, failed {summary.failed}"
        )
        if summary.aborted:
            print(f"Run aborted: {summary.error}", file=sys.stderr)
    return 1 if summary.aborted else 0


async def _handle_reset(args: argparse.Namespace, app_settings: Settings) -> int:
    store = await _open_store(app_settings)
    found = await store.reset(args.species_code)
    if not found:
        print(f"No FAILED cache entry for '{args.species_code}'.", file=sys.stderr)
        return 1
    print(f"Re-queued {args.species_code}.")
    return 0


async def _handle_schedule(app_settings: Settings, worker_config: WorkerConfig) -> int:
    worker = await _build_worker(app_settings, worker_config)
    scheduler = EnrichmentScheduler(
        worker,
        interval_minutes=worker_config.interval_minutes,
        run_timeout_seconds=worker_config.run_timeout_seconds,
        initial_delay_seconds=0,
    )
    await scheduler.start()
    print(
        f"Running enrichment every {worker_config.interval_minutes} min "
        f"with {worker.provider_name}. Ctrl+C to stop."
    )
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the photo queue CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.photo_queue",
        description="Inspect and drive the bird photo cache.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print machine-readable JSON",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML config (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Queue commands")

    subparsers.add_parser("stats", help="Show entry counts by status")

    list_parser = subparsers.add_parser("list", help="List cache entries")
    list_parser.add_argument(
        "--status",
        choices=[s.value for s in PhotoStatus],
        help="Only entries with this status",
    )
    list_parser.add_argument("--limit", type=int, default=50, help="Maximum rows (default: 50)")

    subparsers.add_parser("run-once", help="Process one batch of pending entries")

    reset_parser = subparsers.add_parser("reset", help="Put a FAILED entry back into the queue")
    reset_parser.add_argument("species_code", help="eBird species code, e.g. amecro")

    subparsers.add_parser("schedule", help="Run the worker on its interval until interrupted")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = Settings()
    worker_config = WorkerConfig.from_config(load_config(args.config, settings=app_settings))
    configure_logging(log_level=app_settings.log_level, stream=sys.stderr)

    if args.command == "stats":
        return asyncio.run(_handle_stats(args, app_settings))
    if args.command == "list":
        return asyncio.run(_handle_list(args, app_settings))
    if args.command == "run-once":
        return asyncio.run(_handle_run_once(args, app_settings, worker_config))
    if args.command == "reset":
        return asyncio.run(_handle_reset(args, app_settings))
    if args.command == "schedule":
        try:
            return asyncio.run(_handle_schedule(app_settings, worker_config))
        except KeyboardInterrupt:
            return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
