#!/usr/bin/env python3
"""
HostGuard - CLI entry point.

Exposed as the 'hostguard' console command via pyproject.toml.
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging to stderr (no print-based logging)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )


def apply_logging_config(config: dict[str, Any], verbose: bool = False) -> None:
    """Apply the configured level and optional log file on top of setup_logging()."""
    root = logging.getLogger()
    if not verbose:
        root.setLevel(getattr(logging, config["log_level"], logging.INFO))
    log_file: Optional[Path] = config["log_file"]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
        root.addHandler(handler)


def get_config(args: argparse.Namespace) -> dict[str, Any]:
    """Load config from file; relative paths resolve against the current directory."""
    from hostguard.core.config_loader import load_config

    config_path = Path(args.config)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_path
    return load_config(config_path.resolve(), Path.cwd().resolve())


def _build_checker(config: dict[str, Any]):
    from hostguard.core.jobs import build_checker
    from hostguard.core.log_sink import LoggingSink

    return build_checker(config, LoggingSink(logging.getLogger("hostguard.selfcheck")))


def cmd_run(config: dict[str, Any], stop: Optional[threading.Event] = None) -> int:
    """Start every configured job and block until SIGINT/SIGTERM."""
    from hostguard.core.host import JobHost
    from hostguard.core.jobs import build_jobs

    log = logging.getLogger(__name__)
    stop = stop or threading.Event()

    def on_signal(_signum, _frame) -> None:
        stop.set()

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    host = JobHost(build_jobs(config), grace_period=config["grace_period"])
    host.start()
    log.info("HostGuard running; press Ctrl+C to stop.")
    try:
        while not stop.wait(1.0):
            pass
    finally:
        host.stop()
    log.info("HostGuard stopped.")
    return 0


def cmd_selfcheck(config: dict[str, Any], baseline: Optional[str]) -> int:
    """
    Verify against the baseline file (if any), rewrite it, run all checks.

    Returns 2 when the baseline verification found missing or modified files.
    """
    from hostguard.core.models import CheckStatus
    from hostguard.core.report_view import render_report

    log = logging.getLogger(__name__)
    baseline_path = Path(baseline).resolve() if baseline else Path(config["baseline_path"])
    checker = _build_checker(config)

    integrity_failed = False
    if baseline_path.is_file():
        log.info("Verifying files against baseline: %s", baseline_path)
        verify = checker.verify_hashes_from_baseline(baseline_path)
        log.info("Verify result: %s - %s", verify.status.value, verify.message)
        integrity_failed = verify.status == CheckStatus.ERROR
    else:
        log.info("Baseline not found. A new baseline will be created at: %s", baseline_path)

    log.info("Computing current file hashes and updating baseline...")
    written = checker.check_file_hashes(baseline_path)
    log.info("Hash generation result: %s - %s", written.status.value, written.message)

    report = checker.run_all_checks()
    render_report(report)
    if integrity_failed:
        log.warning("File integrity issues detected against %s", baseline_path)
        return 2
    return 0


def cmd_snapshot(config: dict[str, Any]) -> int:
    """Write one timestamped snapshot and report changes since the previous one."""
    from hostguard.core.alerts import colored_alert
    from hostguard.core.models import CheckStatus

    item = _build_checker(config).save_baseline_with_changes()
    colored_alert(item.format(), item.status.value)
    return 0 if item.status != CheckStatus.ERROR else 1


def cmd_verify(config: dict[str, Any], baseline: str) -> int:
    """Verify root_dir against a baseline file without rewriting it."""
    from hostguard.core.alerts import colored_alert
    from hostguard.core.models import CheckStatus

    item = _build_checker(config).verify_hashes_from_baseline(Path(baseline).resolve())
    colored_alert(item.format(), item.status.value)
    if item.status == CheckStatus.ERROR:
        return 2
    return 0 if item.status == CheckStatus.OK else 1


def cmd_baselines(config: dict[str, Any]) -> int:
    """List stored snapshots, newest first."""
    from hostguard.core.snapshot_store import SnapshotStore

    log_dir = Path(config["log_dir"])
    snapshots = SnapshotStore().list_snapshots(log_dir)
    if not snapshots:
        logging.getLogger(__name__).warning("No snapshots in %s", log_dir)
        return 0
    for path in snapshots:
        print(path)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """CLI logic."""
    default_config = str(Path(__file__).resolve().parent / "config" / "config.yaml")
    parser = argparse.ArgumentParser(
        prog="hostguard",
        description="Background maintenance host with file-integrity snapshots.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=default_config,
        help="Path to config.yaml (default: package config; use CWD-relative or absolute)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run all configured periodic jobs until interrupted")
    p_check = sub.add_parser("selfcheck", help="Run self-check and report changed files")
    p_check.add_argument("--baseline", type=str, default=None, help="Baseline file (default: paths.baseline_file)")
    sub.add_parser("snapshot", help="Write a timestamped snapshot and report changes")
    p_verify = sub.add_parser("verify", help="Verify files against a baseline file")
    p_verify.add_argument("baseline", type=str, help="Baseline file ('path digest' lines)")
    sub.add_parser("baselines", help="List stored snapshots, newest first")

    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)
    log = logging.getLogger(__name__)

    try:
        config = get_config(args)
    except FileNotFoundError as e:
        log.error("%s", e)
        return 1
    except Exception as e:
        log.exception("Failed to load config: %s", e)
        return 1
    apply_logging_config(config, verbose=args.verbose)

    try:
        if args.command == "run":
            return cmd_run(config)
        if args.command == "selfcheck":
            return cmd_selfcheck(config, args.baseline)
        if args.command == "snapshot":
            return cmd_snapshot(config)
        if args.command == "verify":
            return cmd_verify(config, args.baseline)
        if args.command == "baselines":
            return cmd_baselines(config)
    except Exception as e:
        log.exception("%s failed: %s", args.command, e)
        return 1
    parser.print_help()
    return 0


def cli() -> None:
    """Entry point for the hostguard console command."""
    sys.exit(main())
