"""Application entrypoint — start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date, datetime, timedelta

import uvicorn

from met_tracker.config import get_settings
from met_tracker.logger import setup_logging
from met_tracker.utils import format_hms


async def _simulate(profile: str, minutes: float, rate_hz: float, seed: int | None) -> None:
    from met_tracker.inference.classifier import load_classifier
    from met_tracker.sensing.acquisition import generate_samples
    from met_tracker.storage.database import dispose_engine, init_db
    from met_tracker.storage.repository import ActivityRepository
    from met_tracker.tracking.aggregator import SessionAggregator
    from met_tracker.tracking.replay import replay
    from met_tracker.tracking.writer import PersistenceWriter

    settings = get_settings()
    await init_db()
    start = datetime.now()
    writer = PersistenceWriter()
    aggregator = SessionAggregator(
        ActivityRepository(),
        writer,
        min_session_ms=settings.min_session_ms,
        save_interval_seconds=settings.save_interval_seconds,
        retention_months=settings.retention_months,
        clock=lambda: start,
    )
    result = await replay(
        generate_samples(profile, minutes * 60, rate_hz, seed=seed),
        classifier=load_classifier(settings.classifier),
        aggregator=aggregator,
        start=start,
        tick_interval_s=settings.save_interval_seconds,
    )
    await aggregator.flush(start + timedelta(minutes=minutes))
    await writer.drain()
    await dispose_engine()
    print(
        f"profile={profile} samples={result.samples} vectors={result.vectors} "
        f"ticks={result.ticks} class_changes={result.class_changes} "
        f"final={result.final_class.label} write_failures={writer.failures}"
    )


async def _summary(day: date) -> None:
    from met_tracker.models import ActivityClass
    from met_tracker.storage.database import dispose_engine, init_db
    from met_tracker.storage.repository import ActivityRepository

    await init_db()
    summary = await ActivityRepository().daily_summary(day)
    await dispose_engine()
    if summary is None:
        print(f"{day.isoformat()}: no activity recorded")
        return
    print(f"{day.isoformat()}  total {format_hms(summary.total_minutes * 60)}")
    for cls in ActivityClass:
        print(f"  {cls.label:<10} {format_hms(summary.duration_for(cls) * 60)}")


async def _seed_demo() -> int:
    from met_tracker.storage.database import dispose_engine, init_db
    from met_tracker.storage.demo import seed_demo_records
    from met_tracker.storage.repository import ActivityRepository

    await init_db()
    written = await seed_demo_records(ActivityRepository(), date.today())
    await dispose_engine()
    return written


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="met-tracker",
        description="Real-time physical-activity intensity tracker.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── simulate ──────────────────────────────────────────────
    sim_parser = sub.add_parser("simulate", help="Replay a synthetic motion profile into the store.")
    sim_parser.add_argument("--profile", choices=["still", "walking", "running"], default="walking")
    sim_parser.add_argument("--minutes", type=float, default=5.0)
    sim_parser.add_argument("--rate", type=float, default=50.0, help="Sampling rate in Hz.")
    sim_parser.add_argument("--seed", type=int, default=None)

    # ── summary ───────────────────────────────────────────────
    sum_parser = sub.add_parser("summary", help="Print the activity summary for a day.")
    sum_parser.add_argument("--date", type=date.fromisoformat, default=None)

    # ── seed-demo ─────────────────────────────────────────────
    sub.add_parser("seed-demo", help="Seed the last seven days with demo records.")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "met_tracker.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "init-db":
        from met_tracker.storage.database import init_db

        asyncio.run(init_db())
        print("Database tables created.")
    elif args.command == "simulate":
        asyncio.run(_simulate(args.profile, args.minutes, args.rate, args.seed))
    elif args.command == "summary":
        asyncio.run(_summary(args.date or date.today()))
    elif args.command == "seed-demo":
        written = asyncio.run(_seed_demo())
        print(f"Seeded {written} demo records.")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
