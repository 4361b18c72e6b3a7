"""File handler module: encoding-aware read/write and tree enumeration.

Provides the local side of a sync: ``LocalStore`` lists the markdown
files below a root and reads or writes them.  OS errors surface as
``LocalIOFailed`` so the reconciler can record them per document.
"""

from __future__ import annotations

import logging
from pathlib import Path

from charset_normalizer import from_bytes

from .errors import LocalIOFailed

logger = logging.getLogger(__name__)

# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content to a file, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Local Store
# =============================================================================


class LocalStore:
    """Filesystem access for a sync run.

    Args:
        ignore: Directory or file names skipped during enumeration.
            Hidden entries (leading dot) are always skipped.
        suffix: Only files with this suffix are listed.
    """

    def __init__(self, ignore: list[str] | None = None, suffix: str = ".md"):
        self._ignore = frozenset(ignore or ())
        self._suffix = suffix

    def _skipped(self, entry: Path) -> bool:
        return entry.name.startswith(".") or entry.name in self._ignore

    def list_files_recursive(self, root: Path) -> list[str]:
        """List matching files below *root* as POSIX paths relative to it.

        Entries are visited depth-first in name order per directory, so the
        listing is stable across runs.  A missing root yields an empty list.
        """
        if not root.is_dir():
            return []

        found: list[str] = []
        pending = [root]
        while pending:
            directory = pending.pop()
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as exc:
                raise LocalIOFailed(str(directory), str(exc)) from exc

            subdirs: list[Path] = []
            for entry in entries:
                if self._skipped(entry):
                    continue
                if entry.is_dir():
                    subdirs.append(entry)
                elif entry.is_file() and entry.suffix == self._suffix:
                    found.append(entry.relative_to(root).as_posix())
            # Reverse so the stack pops subdirectories in name order
            pending.extend(reversed(subdirs))
        return sorted(found)

    def read_text(self, path: Path) -> str:
        try:
            content, encoding = read_file_with_encoding(path)
        except OSError as exc:
            raise LocalIOFailed(str(path), str(exc)) from exc
        if encoding != "utf-8":
            logger.debug("Read %s as %s", path, encoding)
        return content

    def write_text(self, path: Path, text: str) -> None:
        try:
            write_file(path, text)
        except OSError as exc:
            raise LocalIOFailed(str(path), str(exc)) from exc

    def exists(self, path: Path) -> bool:
        return path.is_file()
