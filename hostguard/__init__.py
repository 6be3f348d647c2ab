"""HostGuard - background maintenance host with file-integrity snapshots."""

__version__ = "0.1.0"
