#!/usr/bin/env python3
# scripts/run_sla_monitor.py
"""
SLA monitor loop.

Each cycle scans open tickets for assignment / completion breaches, pushes
one aggregated message per department, then announces tickets that have not
been notified yet. Every cycle uses its own session; a failed cycle is logged
and the loop carries on.

Examples:
  # One cycle, then exit (cron style)
  python -m scripts.run_sla_monitor --once

  # Run forever, every 60 seconds
  python -m scripts.run_sla_monitor --interval 60
"""

from __future__ import annotations

import argparse
import logging
import time

from discharge_tracker.core.config import get_settings
from discharge_tracker.core.database import session_scope
from discharge_tracker.services.sla_service import notify_opened_tickets, scan_sla_breaches

logger = logging.getLogger(__name__)


def run_cycle() -> dict:
    with session_scope() as db:
        result = scan_sla_breaches(db)
        result["tickets_announced"] = notify_opened_tickets(db)
    return result


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    p = argparse.ArgumentParser(description="Discharge tracker SLA monitor")
    p.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    p.add_argument(
        "--interval",
        type=int,
        default=settings.sla_scan_interval_seconds,
        help="Seconds between cycles (default: SLA_SCAN_INTERVAL_SECONDS)",
    )
    return p.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.once:
        logger.info(f"SLA cycle finished: {run_cycle()}")
        return

    logger.info(f"SLA monitor started, interval {args.interval}s")
    while True:
        try:
            logger.info(f"SLA cycle finished: {run_cycle()}")
        except Exception:
            logger.exception("SLA cycle failed")
        time.sleep(max(args.interval, 1))


if __name__ == "__main__":
    main()
