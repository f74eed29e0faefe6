#!/usr/bin/env python3
"""Catalog maintenance job (cron or manual).

Behavior:
- Reorganize ordinals (no writes when the catalog is already consistent)
- Print an integrity report (duplicate ordinals, tier order, duplicate/orphan ledgers)
- Optionally remove low-activity voters, guarded by a confirmation token

Run (local / cron):
  cd services/api
  python -m scripts.maintenance

Optional env vars:
  SKIP_REORGANIZE=1
  CLEANUP_MAX_VOTES=1
  CLEANUP_CONFIRMATION="DELETE 12 VOTERS WITH AT MOST 1 VOTES"

Without CLEANUP_CONFIRMATION the job only prints the analysis and the token
to pass on the next run.
"""

import asyncio
import os
import sys
from dataclasses import asdict


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv  # noqa: E402

from artdex.services.catalog import CatalogService  # noqa: E402
from artdex.services.errors import ConfirmationRequired  # noqa: E402
from artdex.stores.documents import (  # noqa: E402
    SqlCatalogStore,
    SqlFavoriteStore,
    SqlLedgerStore,
    SqlMarkerStore,
)
from artdex.stores.local import MemoryLocalStore  # noqa: E402
from artdex.stores.postgres import close_db, init_db, ping_db  # noqa: E402

load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _env_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


async def run_maintenance(
    service: CatalogService,
    *,
    reorganize: bool = True,
    cleanup_max_votes: int | None = None,
    cleanup_confirmation: str | None = None,
) -> dict:
    """Run one maintenance pass and return a summary dict."""
    summary: dict = {"ok": True}

    if reorganize:
        result = await service.force_reorganize()
        if result is None:
            summary["ok"] = False
            summary["reorganize"] = {"error": "store unavailable"}
        else:
            summary["reorganize"] = {
                "ok": result.ok,
                "updated": len(result.updated),
                "unchanged": result.unchanged,
                "failed": result.failed,
            }
            summary["ok"] = summary["ok"] and result.ok

    violations = await service.check_integrity()
    if violations is None:
        summary["ok"] = False
        summary["integrity"] = {"error": "store unavailable"}
    else:
        summary["integrity"] = {
            "violations": len(violations),
            "details": [asdict(v) for v in violations],
        }

    if cleanup_max_votes is not None:
        report = await service.analyze_low_vote_voters(cleanup_max_votes)
        if report is None:
            summary["ok"] = False
            summary["cleanup"] = {"error": "store unavailable"}
        elif cleanup_confirmation is None:
            summary["cleanup"] = {
                "dry_run": True,
                "voters": len(report.voters),
                "total_votes": report.total_votes,
                "confirmation": report.confirmation,
            }
        else:
            try:
                removed = await service.cleanup_low_vote_voters(cleanup_max_votes, cleanup_confirmation)
            except ConfirmationRequired as e:
                summary["ok"] = False
                summary["cleanup"] = {"error": "confirmation mismatch", "expected": e.expected}
            else:
                summary["ok"] = summary["ok"] and removed is not None
                summary["cleanup"] = {"removed_voters": removed}

    return summary


async def main() -> None:
    # Same connections as the API lifespan, for a one-off run
    await init_db()
    await ping_db()

    try:
        service = CatalogService(
            SqlCatalogStore(),
            SqlLedgerStore(),
            SqlMarkerStore(),
            SqlFavoriteStore(),
            MemoryLocalStore(),
        )
        summary = await run_maintenance(
            service,
            reorganize=not _env_flag("SKIP_REORGANIZE"),
            cleanup_max_votes=_env_int("CLEANUP_MAX_VOTES"),
            cleanup_confirmation=os.getenv("CLEANUP_CONFIRMATION") or None,
        )
        # Single JSON-ish blob for cron logs
        print(summary)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
