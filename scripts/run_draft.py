#!/usr/bin/env python3
# scripts/run_draft.py
"""Create, initialize and auto-run a draft."""

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from dotenv import load_dotenv

load_dotenv()

from draftroom.errors import DraftRoomError
from draftroom.models import DraftStatus
from draftroom.processing.auto_pick import AutoPickService
from draftroom.processing.draft import DraftEngine, parse_draft_order
from draftroom.storage.db import close_pool, get_all_teams, get_connection

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "draftroom" / "storage" / "schema.sql"


@dataclass
class StageResult:
    stage: str
    status: str  # "ok", "error"
    records: int = 0
    errors: int = 0
    duration_seconds: float = 0.0


def _log_stage(sr: StageResult) -> None:
    """Emit structured JSON log for a completed stage."""
    logger.info(
        json.dumps(
            {
                "stage": sr.stage,
                "status": sr.status,
                "records": sr.records,
                "errors": sr.errors,
                "duration_s": sr.duration_seconds,
            }
        )
    )


async def apply_schema() -> int:
    async with get_connection() as conn:
        await conn.execute(SCHEMA_PATH.read_text())
        await conn.commit()
    return 1


async def initialize_from_file(engine: DraftEngine, draft_id: UUID, path: Path) -> list:
    """Initialize picks from a JSON list of draft order records."""
    records = json.loads(path.read_text())
    async with get_connection() as conn:
        teams = await get_all_teams(conn)
    return await engine.initialize_picks_from_order(draft_id, parse_draft_order(records, teams))


async def auto_draft(engine: DraftEngine, draft_id: UUID, max_picks: int | None) -> dict:
    """Auto-pick every remaining pick in order, stopping at the first failure."""
    made = 0
    errors = 0
    while max_picks is None or made < max_picks:
        pick = await engine.get_next_pick(draft_id)
        if pick is None:
            break
        try:
            await engine.execute_auto_pick(pick.id)
        except DraftRoomError as e:
            logger.error(f"Auto-pick failed at pick {pick.overall_pick}: {e}")
            errors += 1
            break
        made += 1
    return {"picks_made": made, "errors": errors}


async def run_stage(name: str, coro) -> StageResult:
    """Run a stage with timing and error capture."""
    start = time.monotonic()
    try:
        result = await coro
        duration = time.monotonic() - start
        if isinstance(result, dict):
            records = result.get("picks_made", 0)
            errors = result.get("errors", 0)
        elif isinstance(result, list):
            records, errors = len(result), 0
        else:
            records, errors = 1, 0
        status = "error" if errors else "ok"
        return StageResult(name, status, records, errors, round(duration, 2))
    except DraftRoomError as e:
        duration = time.monotonic() - start
        logger.error(f"Stage {name} failed: {e}")
        return StageResult(stage=name, status="error", errors=1, duration_seconds=round(duration, 2))


async def async_main():
    parser = argparse.ArgumentParser(description="Run a draftroom draft")
    parser.add_argument("--init-db", action="store_true", help="Apply the database schema")
    parser.add_argument("--create", action="store_true", help="Create a new draft")
    parser.add_argument("--name", default=None, help="Name for a new draft")
    parser.add_argument("--year", type=int, default=2026, help="Draft year (default: 2026)")
    parser.add_argument("--rounds", type=int, default=7, help="Rounds (default: 7)")
    parser.add_argument(
        "--picks-per-round",
        type=int,
        default=None,
        help="Fixed picks per round (default: one per team)",
    )
    parser.add_argument("--draft-id", type=UUID, default=None, help="Existing draft to operate on")
    parser.add_argument("--initialize", action="store_true", help="Create the pick order")
    parser.add_argument(
        "--order-file",
        type=Path,
        default=None,
        help="JSON draft order to initialize from (round, pick, overall, team, ...)",
    )
    parser.add_argument("--auto-draft", action="store_true", help="Auto-pick remaining picks")
    parser.add_argument(
        "--max-picks",
        type=int,
        default=None,
        help="Stop auto-drafting after this many picks",
    )

    args = parser.parse_args()

    if not any([args.init_db, args.create, args.initialize, args.order_file, args.auto_draft]):
        parser.print_help()
        sys.exit(1)

    engine = DraftEngine(auto_pick=AutoPickService())
    stage_results: list[StageResult] = []
    draft_id = args.draft_id

    try:
        if args.init_db:
            sr = await run_stage("init-db", apply_schema())
            stage_results.append(sr)
            _log_stage(sr)

        if args.create:
            name = args.name or f"{args.year} Draft"
            if args.picks_per_round is None:
                draft = await engine.create_realistic_draft(name, args.year, args.rounds)
            else:
                draft = await engine.create_draft(name, args.year, args.rounds, args.picks_per_round)
            draft_id = draft.id
            logger.info(json.dumps({"draft_created": str(draft_id), "year": draft.year}))

        if (args.initialize or args.order_file or args.auto_draft) and draft_id is None:
            logger.error("--draft-id or --create is required")
            sys.exit(1)

        if args.order_file:
            sr = await run_stage(
                "initialize-order", initialize_from_file(engine, draft_id, args.order_file)
            )
            stage_results.append(sr)
            _log_stage(sr)
        elif args.initialize:
            sr = await run_stage("initialize", engine.initialize_picks(draft_id))
            stage_results.append(sr)
            _log_stage(sr)

        if args.auto_draft:
            draft = await engine.get_draft(draft_id)
            if draft.status in (DraftStatus.NOT_STARTED, DraftStatus.PAUSED):
                await engine.start_draft(draft_id)
            sr = await run_stage("auto-draft", auto_draft(engine, draft_id, args.max_picks))
            stage_results.append(sr)
            _log_stage(sr)
            if sr.status == "ok" and await engine.get_next_pick(draft_id) is None:
                await engine.complete_draft(draft_id)
    finally:
        await close_pool()

    if stage_results:
        total_time = sum(sr.duration_seconds for sr in stage_results)
        failed = sum(1 for sr in stage_results if sr.status == "error")
        logger.info(
            json.dumps(
                {
                    "draft_summary": True,
                    "draft_id": str(draft_id) if draft_id else None,
                    "stages_run": len(stage_results),
                    "stages_failed": failed,
                    "total_duration_s": round(total_time, 2),
                }
            )
        )
        if failed > 0:
            sys.exit(1)


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
