"""Command line entry point for dotsnapshot."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from backup import RetentionError
from backup.stats import format_size
from core.logging_utils import LEVEL_NAMES, configure_logging, log_success
from core.paths import SnapshotPaths, resolve_project_root
from core.settings import ConfigurationError, SnapshotSettings, load_settings
from core.versioning import get_app_version
from orchestrator import Orchestrator, OrchestratorError

LOGGER = logging.getLogger("dotsnapshot.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotsnapshot",
        description="Capture configuration snapshots and prune old backups",
    )
    parser.add_argument("--config", default=None, help="Settings file (default: search order)")
    parser.add_argument("--target-dir", default=None, help="Snapshot target directory override")
    parser.add_argument("--retention-days", type=int, default=None, help="Backup retention period in days")
    parser.add_argument("--logs-dir", default=None, help="Log directory override")
    parser.add_argument(
        "--no-machine-dirs",
        action="store_true",
        help="Write snapshots directly under the target directory",
    )
    parser.add_argument("--timestamp", default=None, help="Run timestamp (YYYYMMDD_HHMMSS)")
    parser.add_argument("--log-level", default=None, type=str.upper, choices=LEVEL_NAMES, help="Console log level")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--list", action="store_true", help="List the configured generation units")
    action.add_argument("--version", action="store_true", help="Print the version and exit")
    action.add_argument("--cleanup", action="store_true", help="Show backup statistics and apply retention only")
    action.add_argument("--stats", action="store_true", help="Show backup statistics only")
    action.add_argument("unit", nargs="?", default=None, help="Run a single generation unit without backups")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "snapshot_target_dir": args.target_dir,
        "backup_retention_days": args.retention_days,
        "logs_dir": args.logs_dir,
        "use_machine_directories": False if args.no_machine_dirs else None,
    }


def _print_units(settings: SnapshotSettings) -> None:
    print("Available generation units:")
    for entry in settings.generators:
        print(f"  {entry.name:<20} {entry.display_name}")
        if entry.description:
            print(f"  {'':<20} {entry.description}")


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"dotsnapshot {get_app_version()}")
        return 0

    configure_logging(level=args.log_level or "INFO")
    project_root = resolve_project_root()
    config_path = Path(args.config).expanduser().resolve() if args.config else None
    try:
        settings = load_settings(project_root, config_path=config_path, overrides=_overrides(args))
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1

    if args.list:
        _print_units(settings)
        return 0

    paths = SnapshotPaths.from_settings(settings, project_root=project_root)
    try:
        configure_logging(
            paths.log_dir,
            "dotsnapshot.log",
            level=args.log_level or settings.logging.level,
            color=settings.logging.color,
        )
        orchestrator = Orchestrator(settings, paths=paths, project_root=project_root, config_path=config_path)
        if args.stats:
            stats = orchestrator.stats()
            LOGGER.info("%d backup run(s), %s total", stats.run_count, format_size(stats.total_bytes))
            return 0
        if args.cleanup:
            summary = orchestrator.cleanup()
            log_success(LOGGER, "Cleanup finished: removed %d, kept %d", summary.removed_count, summary.kept_count)
            return 0
        if args.unit:
            result = orchestrator.run_single(args.unit, timestamp=args.timestamp)
        else:
            result = orchestrator.run(timestamp=args.timestamp)
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1
    except (OrchestratorError, RetentionError) as exc:
        LOGGER.error("%s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("Filesystem error: %s", exc)
        return 1

    if not result.ok:
        LOGGER.error("Snapshot run %s failed at unit %s", result.timestamp, result.failed_unit)
        return 1
    if result.retention_error:
        LOGGER.warning("Snapshots completed but retention did not: %s", result.retention_error)
    log_success(LOGGER, "Snapshot run %s completed (%d unit(s))", result.timestamp, len(result.completed))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
