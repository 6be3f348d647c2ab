"""
HostGuard - Directory fingerprinting.

Walks a directory tree and builds a fingerprint: a mapping of normalized
relative path to content digest for every file matching a set of name
patterns. Coverage is best-effort: files that cannot be read are left out.
"""

import fnmatch
import logging
import os
from pathlib import Path, PurePath, PurePosixPath
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Union

from hostguard.core.hashing import HashEngine

logger = logging.getLogger(__name__)

# Executables, libraries and the application's own sources/scripts.
DEFAULT_PATTERNS: tuple[str, ...] = ("*.dll", "*.exe", "*.so", "*.py", "*.cs", "*.ps1", "*.sh")


def normalize_key(rel_path: Union[str, PurePath]) -> str:
    """
    Normalize a relative path into a fingerprint key.

    Separators become '/', leading './' and '/' are dropped and the result is
    case folded so that keys compare case-insensitively.
    """
    key = str(rel_path).replace("\\", "/")
    while key.startswith("./"):
        key = key[2:]
    return key.lstrip("/").casefold()


def patterns_for(fingerprint: Mapping[str, str]) -> list[str]:
    """Glob patterns covering every file extension present in a fingerprint."""
    return sorted({"*" + PurePosixPath(key).suffix for key in fingerprint})


class TreeFingerprinter:
    """
    Builds {normalized relative path: digest} maps for directory trees.

    Per-file read errors exclude the file; a missing or unreadable root
    raises.
    """

    def __init__(
        self,
        hash_engine: Optional[HashEngine] = None,
        exclude_dirs: Optional[Iterable[Union[str, Path]]] = None,
    ) -> None:
        self.hash_engine = hash_engine or HashEngine()
        self.exclude_dirs = {Path(d).resolve() for d in (exclude_dirs or [])}

    @staticmethod
    def _matches(name: str, patterns: Sequence[str]) -> bool:
        folded = name.casefold()
        return any(fnmatch.fnmatchcase(folded, p) for p in patterns)

    def _walk(self, root: Path) -> Iterator[Path]:
        """Yield files under root in a stable order; unreadable subdirectories are skipped."""

        def on_error(err: OSError) -> None:
            if err.filename is not None and Path(err.filename) == root:
                raise err
            logger.debug("Skipping unreadable directory %s: %s", err.filename, err)

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if (current / d).resolve() not in self.exclude_dirs)
            for name in sorted(filenames):
                yield current / name

    def fingerprint(
        self,
        root: Union[str, Path],
        patterns: Optional[Sequence[str]] = None,
    ) -> dict[str, str]:
        """
        Fingerprint every file under root matching any of patterns.

        Args:
            root: Directory to walk recursively.
            patterns: Glob patterns matched case-insensitively against file
                names; DEFAULT_PATTERNS when empty or None.

        Returns:
            Fresh dict of normalized relative path -> hex digest. When two
            files map to the same key the first one walked wins.

        Raises:
            FileNotFoundError: root does not exist.
            NotADirectoryError: root is not a directory.
            PermissionError: root cannot be listed.
        """
        root_path = Path(root).resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Root directory not found: {root_path}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Not a directory: {root_path}")
        folded = tuple(p.casefold() for p in (patterns or DEFAULT_PATTERNS))

        result: dict[str, str] = {}
        for path in self._walk(root_path):
            if not self._matches(path.name, folded):
                continue
            key = normalize_key(path.relative_to(root_path))
            if key in result:
                continue
            try:
                if not path.is_file():
                    continue
                result[key] = self.hash_engine.compute_file_hash(path)
            except OSError as e:
                logger.debug("Skipping %s: %s", path, e)
        logger.debug("Fingerprinted %d files under %s", len(result), root_path)
        return result
