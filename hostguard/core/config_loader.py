"""
HostGuard - Configuration loader.

Loads config.yaml, applies defaults and resolves paths relative to the
project root. The resulting dict is treated as read-only by every job.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from hostguard.core.host import DEFAULT_GRACE_PERIOD
from hostguard.core.scanner import DEFAULT_PATTERNS
from hostguard.core.self_check import (
    DEFAULT_ARTIFACT_NAME,
    DEFAULT_SERVICE_NAME,
    DEFAULT_TOOL_NAME,
    MIB,
    default_artifact_candidates,
    default_tool_dirs,
)

logger = logging.getLogger(__name__)

HOUR = 3600.0
# Snapshots are named with second resolution; keep intervals well above that.
MIN_INTERVAL_SECONDS = 60.0


def _interval(section: dict[str, Any], default_hours: float) -> float:
    hours = float(section.get("interval_hours", default_hours))
    return max(MIN_INTERVAL_SECONDS, hours * HOUR)


def build_config(raw: dict[str, Any], root: Path) -> dict[str, Any]:
    """Apply defaults to a raw (parsed YAML) mapping and resolve paths against root."""

    def resolve(p: Any) -> Path:
        path_obj = Path(str(p)).expanduser()
        return (root / path_obj).resolve() if not path_obj.is_absolute() else path_obj.resolve()

    paths_raw = raw.get("paths") or {}
    root_dir = resolve(paths_raw.get("root_dir", "."))
    log_dir = resolve(paths_raw.get("log_dir", "./selfchecklog"))
    baseline_file = resolve(paths_raw.get("baseline_file", "./file_hashes.txt"))
    alert_log_path = paths_raw.get("alert_log_path")

    check_raw = raw.get("self_check") or {}
    patterns = [str(p) for p in (check_raw.get("patterns") or DEFAULT_PATTERNS)]
    min_free_mb = max(0, int(check_raw.get("min_free_mb", 100)))
    tool_dirs = check_raw.get("tool_dirs")
    artifact_name = str(check_raw.get("artifact_name", DEFAULT_ARTIFACT_NAME))
    artifact_candidates = check_raw.get("artifact_candidates")

    backup_raw = raw.get("backup") or {}
    update_raw = raw.get("update") or {}
    host_raw = raw.get("host") or {}
    alerts_raw = raw.get("alerts") or {}
    logging_raw = raw.get("logging") or {}
    log_file = logging_raw.get("log_file")

    return {
        "project_root": root,
        "root_dir": root_dir,
        "log_dir": log_dir,
        "baseline_path": baseline_file,
        "alert_log_path": resolve(alert_log_path) if alert_log_path else None,
        "console_alerts": bool(alerts_raw.get("console_alerts", False)),
        "patterns": patterns,
        "self_check_interval": _interval(check_raw, 6),
        "min_free_bytes": min_free_mb * MIB,
        "tool_name": str(check_raw.get("tool_name", DEFAULT_TOOL_NAME)),
        "tool_dirs": [resolve(d) for d in tool_dirs] if tool_dirs else default_tool_dirs(),
        "artifact_name": artifact_name,
        "artifact_candidates": (
            [Path(str(c)) for c in artifact_candidates]
            if artifact_candidates
            else default_artifact_candidates(artifact_name)
        ),
        "service_name": str(check_raw.get("service_name", DEFAULT_SERVICE_NAME)),
        "backup_enabled": bool(backup_raw.get("enabled", False)),
        "backup_source_dir": resolve(backup_raw.get("source_dir", "~/Documents")),
        "backup_dir": resolve(backup_raw.get("backup_dir", "./backups")),
        "backup_interval": _interval(backup_raw, 24),
        "update_enabled": bool(update_raw.get("enabled", False)),
        "update_endpoint": str(update_raw.get("endpoint", "") or "").strip(),
        "update_interval": _interval(update_raw, 12),
        "update_timeout": max(1.0, float(update_raw.get("timeout_seconds", 30))),
        "grace_period": max(0.0, float(host_raw.get("grace_period_seconds", DEFAULT_GRACE_PERIOD))),
        "log_level": str(logging_raw.get("level", "INFO")).upper(),
        "log_file": resolve(log_file) if log_file else None,
    }


def default_config(project_root: Optional[Path] = None) -> dict[str, Any]:
    """Configuration with every default applied."""
    return build_config({}, (project_root or Path.cwd()).resolve())


def load_config(config_path: Path, project_root: Optional[Path] = None) -> dict[str, Any]:
    """
    Load YAML config and resolve paths relative to project_root.

    Args:
        config_path: Path to config.yaml.
        project_root: Base for relative paths; defaults to the config file's directory.

    Raises:
        FileNotFoundError: config_path does not exist.
        ValueError: the file is not a YAML mapping.
    """
    path = Path(config_path).resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Config not found: {path}")

    root = (project_root or path.parent).resolve()
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config must be a mapping: {path}")
    config = build_config(raw, root)
    logger.debug("Loaded config %s (root_dir=%s)", path, config["root_dir"])
    return config
