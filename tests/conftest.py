from pathlib import Path

import pytest


class RecordingSink:
    """LogSink that keeps every line for assertions."""

    def __init__(self):
        self.infos = []
        self.errors = []

    def info(self, message):
        self.infos.append(message)

    def error(self, message):
        self.errors.append(message)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def app_tree(tmp_path: Path) -> Path:
    """Application directory with a few fingerprintable files and some noise."""
    root = tmp_path / "app"
    (root / "bin").mkdir(parents=True)
    (root / "scripts").mkdir()
    (root / "main.py").write_text("print('hello')\n")
    (root / "bin" / "tool.exe").write_bytes(b"MZ\x90\x00binary")
    (root / "bin" / "lib.dll").write_bytes(b"\x00\x01library")
    (root / "scripts" / "setup.sh").write_text("#!/bin/sh\necho setup\n")
    (root / "README.txt").write_text("not fingerprinted by default\n")
    return root
