from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .cache import FileCache
from .calendar_google import CalendarStore, GoogleCalendarStore
from .config import AppConfig, ConfigError, load_config
from .locator import DriveBlockLocator
from .reconcile import DriveBlockReconciler
from .scan import ScanOrchestrator
from .scheduling import SchedulePaths, SchedulingService
from .travel import DistanceMatrixClient, TravelTimeResolver

logger = logging.getLogger("drivetime")

CONFIG_PATH_DEFAULT = "/etc/drivetime/config.yaml"

LOG_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def configure_logging(level_name: str) -> int:
    level = LOG_LEVELS.get(level_name.strip().upper())
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level or logging.INFO)
    if level is None:
        logger.warning("Unknown log level %r; using INFO", level_name)
        return logging.INFO
    return level


def build_orchestrator(cfg: AppConfig, store: CalendarStore) -> ScanOrchestrator:
    resolver = None
    if cfg.maps_api_key:
        resolver = TravelTimeResolver(
            DistanceMatrixClient(cfg.maps_api_key),
            FileCache(cfg.cache_path),
            ZoneInfo(cfg.timezone),
        )
    reconciler = DriveBlockReconciler(cfg, store, DriveBlockLocator(store), resolver)
    return ScanOrchestrator(cfg, store, reconciler)


def _connect(cfg: AppConfig) -> Optional[CalendarStore]:
    if not (cfg.google.credentials_path and cfg.google.token_path):
        logger.warning("GOOGLE_CREDENTIALS_JSON/GOOGLE_TOKEN_JSON not set; nothing to do.")
        return None
    return GoogleCalendarStore.connect(cfg.google.credentials_path, cfg.google.token_path)


def run_scan(cfg: AppConfig, calendar_ids: Optional[str] = None, lookahead_hours: Optional[int] = None) -> None:
    missing = cfg.missing_required()
    if missing:
        logger.warning("Missing configuration %s; only cleanup will run.", ", ".join(missing))
    store = _connect(cfg)
    if store is None:
        return
    build_orchestrator(cfg, store).scan(calendar_ids, lookahead_hours)


def run_handle_event(cfg: AppConfig, calendar_id: str, event_id: str) -> None:
    store = _connect(cfg)
    if store is None:
        return
    outcome = build_orchestrator(cfg, store).handle_event_by_id(calendar_id, event_id)
    logger.info("Event %s on %s: %s", event_id, calendar_id, outcome)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="drivetime", description="Keep 'Drive to ...' blocks ahead of in-person meetings")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("--log-level", help="ERROR, WARN, INFO or DEBUG; overrides the config file")
    sub = ap.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Reconcile upcoming events on every configured calendar")
    scan.add_argument("--calendar-ids", help="Comma separated calendar ids")
    scan.add_argument("--lookahead-hours", type=int)

    event = sub.add_parser("handle-event", help="Reconcile a single event")
    event.add_argument("--calendar-id", required=True)
    event.add_argument("--event-id", required=True)

    sub.add_parser("reset-schedule", help="(Re)install the poll and backup timers")
    sub.add_parser("scan-now", help="Start a scan immediately")

    args = ap.parse_args(argv)

    load_dotenv()
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("Invalid configuration: %s", exc)
        return 2
    configure_logging(args.log_level or cfg.log_level)

    try:
        if args.command == "scan":
            run_scan(cfg, args.calendar_ids, args.lookahead_hours)
        elif args.command == "handle-event":
            run_handle_event(cfg, args.calendar_id, args.event_id)
        elif args.command == "reset-schedule":
            print(json.dumps(SchedulingService(SchedulePaths(config_path=Path(args.config))).reset(cfg.schedule), indent=2))
        elif args.command == "scan-now":
            result = SchedulingService().trigger_now()
            if not result["started"]:
                logger.info("Could not start the scan service (%s); scanning in-process", result.get("error") or result.get("stderr"))
                run_scan(cfg)
            else:
                print(json.dumps(result, indent=2))
    except Exception:
        logger.exception("drivetime %s failed", args.command)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
