"""
HostGuard - Hashing module.

Computes MD5 content digests for change detection. MD5 is fast and good
enough to notice that a file's bytes changed; it is NOT collision resistant
against an attacker and offers no tamper-proofing.
"""

import hashlib
import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class HashEngine:
    """Computes file content digests using MD5."""

    ALGORITHM = "md5"
    CHUNK_SIZE = 64 * 1024

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def compute_file_hash(self, file_path: Union[str, Path]) -> str:
        """
        Compute the MD5 digest of a file, reading it in chunks.

        Args:
            file_path: Path to the file.

        Returns:
            Lowercase hex digest (32 characters).

        Raises:
            OSError: the file cannot be opened or read.
        """
        hasher = hashlib.new(self.ALGORITHM)
        with open(file_path, "rb") as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)
        return hasher.hexdigest()
