#!/usr/bin/env python3
"""incident_alerts – feed watcher and community alert notifier.

Usage:
    python main.py              # run one polling cycle (default)
    python main.py --schedule   # poll every interval_seconds until Ctrl-C
    python main.py --serve      # run the web API (includes scraper controls)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# ── Ensure project root is on sys.path ───────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# ── Load .env file (if present) ──────────────────────────────────────
_env_path = PROJECT_ROOT / ".env"
load_dotenv(_env_path, override=True)  # override=True so .env always wins

from process.cycle import load_feed_config, make_cycle
from process.scheduler import FeedScheduler
from storage.db import count_alerts, init_db

# ── Logging setup ────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


log = logging.getLogger("incident_alerts")


# ── Modes ────────────────────────────────────────────────────────────


def run_once(config_path: str | None = None) -> None:
    """Execute a single fetch → match → store cycle."""
    config = load_feed_config(config_path)
    log.info(
        "Config loaded: %d feeds, %d keywords",
        len(config["feeds"]),
        len(config["keywords"]),
    )
    init_db()
    stats = make_cycle(config)()
    log.info("Stored alerts: %d total (%d new this cycle)", count_alerts(), stats.created)


def run_scheduled(config_path: str | None = None) -> None:
    """Poll on a fixed interval in the foreground."""
    config = load_feed_config(config_path)
    init_db()
    scheduler = FeedScheduler(make_cycle(config), interval=config["interval_seconds"])
    log.info("Polling %d feeds every %ss – Ctrl-C to stop", len(config["feeds"]), scheduler.interval)
    scheduler.run_blocking()
    log.info("Scheduler stopped")


def run_server(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("web.app:app", host=host, port=port)


# ── CLI ──────────────────────────────────────────────────────────────


def main() -> None:
    parser = argparse.ArgumentParser(description="Incident feed watcher and alert notifier")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--schedule",
        action="store_true",
        help="Poll feeds on the configured interval instead of once",
    )
    mode.add_argument(
        "--serve",
        action="store_true",
        help="Run the web API",
    )
    parser.add_argument("--config", help="Path to feeds YAML (default: config/feeds.yaml)")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    args = parser.parse_args()

    _setup_logging()
    if args.serve:
        run_server(args.host, args.port)
    elif args.schedule:
        run_scheduled(args.config)
    else:
        run_once(args.config)


if __name__ == "__main__":
    main()
