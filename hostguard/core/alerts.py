"""
HostGuard - Alert output.

colored_alert() prints a status line in color via colorama; AlertManager
appends integrity changes as JSON lines to an alert log.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO

import colorama
from colorama import Fore, Style

from hostguard.core.models import ChangeDescriptor, ChangeKind

logger = logging.getLogger(__name__)

_colorama_init_done = False

_LEVEL_COLORS = {
    "ERROR": Fore.RED,
    "CRITICAL": Fore.RED,
    "WARNING": Fore.YELLOW,
}

_KIND_LEVELS = {
    ChangeKind.NEW: "INFO",
    ChangeKind.MISSING: "WARNING",
    ChangeKind.MODIFIED: "WARNING",
}


def _ensure_colorama() -> None:
    global _colorama_init_done
    if not _colorama_init_done:
        colorama.just_fix_windows_console()
        _colorama_init_done = True


def colored_alert(message: str, level: str, stream: Optional[TextIO] = None) -> None:
    """
    Print a message in color to stream (stderr by default). ERROR/CRITICAL
    red, WARNING yellow, anything else (OK, INFO) green.
    """
    _ensure_colorama()
    prefix = _LEVEL_COLORS.get(level.upper(), Fore.GREEN)
    print(f"{prefix}{message}{Style.RESET_ALL}", file=stream or sys.stderr)


class AlertManager:
    """Writes one JSON record per integrity change to a log file, optionally echoing to console."""

    def __init__(self, log_path: Path, console_alerts: bool = False) -> None:
        self.log_path = Path(log_path)
        self.console_alerts = console_alerts
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _format_alert(change: ChangeDescriptor) -> dict:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": change.kind.name,
            "file_path": change.path,
            "severity": _KIND_LEVELS[change.kind],
        }

    def emit_changes(self, changes: list[ChangeDescriptor]) -> None:
        """Append every change to the alert log."""
        if not changes:
            return
        lines = [json.dumps(self._format_alert(c)) + "\n" for c in changes]
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.writelines(lines)
        except OSError as e:
            logger.error("Failed to write alerts to %s: %s", self.log_path, e)
        if self.console_alerts:
            for change in changes:
                level = _KIND_LEVELS[change.kind]
                colored_alert(f"[{level}] {change.kind.name}: {change.path}", level)
