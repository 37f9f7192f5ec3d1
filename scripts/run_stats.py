"""
Script to recalculate blog statistics and optionally audit them
"""

from typing import Optional, Sequence
import argparse
import asyncio
import logging
import sys

from core.config import Settings, settings as default_settings
from core.database import create_engine_from_settings, create_session_maker
from core.exceptions import BlogOpsException
from core.logging import setup_logging
from pipeline.aggregator import StatsAggregator
from pipeline.verifier import IntegrityVerifier

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recalculate post word counts and daily rollups.",
    )
    parser.add_argument(
        "--type",
        choices=["words", "daily", "all"],
        default="all",
        help="What to recalculate (default: all)",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Trailing days to aggregate (default: STATS_LOOKBACK_DAYS)",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Run the integrity audit afterwards",
    )
    return parser.parse_args(argv)


async def run_stats(stats_type: str, days: int, verify: bool, settings: Settings) -> bool:
    """
    Run the requested jobs. Returns False when the audit found a mismatch.
    """
    engine = create_engine_from_settings(settings)
    session_maker = create_session_maker(engine)

    try:
        async with session_maker() as session:
            aggregator = StatsAggregator(session)

            if stats_type in ("words", "all"):
                result = await aggregator.recalculate_post_word_counts()
                print(f"Word counts: {result['posts_updated']} updated, {result['posts_failed']} failed")

            if stats_type in ("daily", "all"):
                processed = await aggregator.aggregate_daily_stats(days)
                print(f"Daily stats: {processed} days processed")

            if verify:
                verifier = IntegrityVerifier(session, settings.INTEGRITY_ZERO_WORDCOUNT_THRESHOLD)
                report = await verifier.verify()
                print(f"Integrity: {'valid' if report.valid else 'INVALID'}")
                for issue in report.issues:
                    print(f"  - {issue}")
                return report.valid

        return True
    finally:
        await engine.dispose()


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = parse_args(argv)
    settings = settings or default_settings
    setup_logging(settings)

    days = args.days if args.days is not None else settings.STATS_LOOKBACK_DAYS
    try:
        ok = asyncio.run(run_stats(args.type, days, args.verify, settings))
    except BlogOpsException as e:
        logger.error(f"Statistics job failed: {str(e)}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
