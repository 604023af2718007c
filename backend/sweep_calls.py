"""End calls that sat unanswered past the configured deadline.

Run from cron or a scheduler, e.g. ``python sweep_calls.py --older-than 120``.
Without ``--older-than`` the UNANSWERED_CALL_TIMEOUT_SECONDS setting is used;
if neither is set nothing is swept.
"""
import argparse
import sys
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

from signaling.core.config import settings
from signaling.core.sweeper import sweep_unanswered_calls
from signaling.db.session import SessionLocal
from signaling.utils.logger import configure_logging, get_logger

logger = get_logger("signaling.sweep")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="End unanswered calls older than a deadline")
    parser.add_argument(
        "--older-than",
        type=int,
        default=settings.UNANSWERED_CALL_TIMEOUT_SECONDS,
        help="Age in seconds after which an unanswered call is ended",
    )
    args = parser.parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if args.older_than is None:
        logger.info("No unanswered-call deadline configured, nothing to sweep")
        return 0

    db = SessionLocal()
    try:
        ended = sweep_unanswered_calls(db, timedelta(seconds=args.older_than))
    finally:
        db.close()
    logger.info("Sweep complete, %d call(s) ended", len(ended))
    return 0


if __name__ == "__main__":
    sys.exit(main())
