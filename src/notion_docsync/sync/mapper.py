"""Path mapping between local files and logical document paths.

A *logical path* is the tuple of names a document has in the remote
tree: every folder becomes a container page and the file stem becomes the
page title.  The docs marker directory exists only locally.

Mapping rules:

1. **Publish filter** -- a path must match one of ``publish_patterns`` and
   none of ``exclude``.
2. **Local -> logical** -- marker segments are dropped and ``.md`` is
   removed from the last segment.
3. **Logical -> local** -- the marker is inserted after the topic segment
   (``topic/<marker>/rest.md``) when configured.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable
from pathlib import PurePosixPath

from ..config_schema import SyncSettings

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"

# Titles that would leave their folder when used as a path segment.
UNSAFE_SEGMENTS = frozenset({"", ".", ".."})


class PathMapper:
    """Map local file paths to logical paths and back.

    Args:
        settings: Sync conventions (docs marker and glob filters).
    """

    def __init__(self, settings: SyncSettings) -> None:
        self._settings = settings

    def is_publishable(self, rel_path: str) -> bool:
        """Return True when *rel_path* (POSIX, relative) should be synced."""
        if not rel_path.endswith(MARKDOWN_SUFFIX):
            return False
        if not any(
            fnmatch.fnmatchcase(rel_path, pattern)
            for pattern in self._settings.publish_patterns
        ):
            return False
        for pattern in self._settings.exclude:
            if fnmatch.fnmatchcase(rel_path, pattern):
                logger.debug("Excluded by %s: %s", pattern, rel_path)
                return False
        return True

    def to_logical(self, rel_path: str) -> tuple[str, ...]:
        """Map ``topics/docs/alpha/notes.md`` to ``("topics", "alpha", "notes")``."""
        path = PurePosixPath(rel_path)
        marker = self._settings.docs_marker
        folders = [part for part in path.parent.parts if part != marker]
        stem = path.stem if path.suffix == MARKDOWN_SUFFIX else path.name
        return (*folders, stem)

    def to_local(self, logical: tuple[str, ...]) -> str:
        """Map a logical path to the relative file path a pull writes.

        Raises:
            ValueError: If the path is empty or a segment would not stay a
                single directory entry below the local root.
        """
        if not logical:
            raise ValueError("Logical path cannot be empty")
        for segment in logical:
            if segment in UNSAFE_SEGMENTS or any(c in segment for c in "/\\\0"):
                raise ValueError(f"Unsafe title for a local path: {segment!r}")
        parts = list(logical)
        marker = self._settings.docs_marker
        if marker and len(parts) > 1:
            parts.insert(1, marker)
        parts[-1] = parts[-1] + MARKDOWN_SUFFIX
        return "/".join(parts)

    def build_local_index(
        self, rel_paths: Iterable[str]
    ) -> dict[tuple[str, ...], str]:
        """Index existing files by logical path.

        When two files share a logical path the first one listed wins and
        the other is reported.
        """
        index: dict[tuple[str, ...], str] = {}
        for rel_path in rel_paths:
            logical = self.to_logical(rel_path)
            if logical in index:
                logger.warning(
                    "%s and %s map to the same page; using the former",
                    index[logical],
                    rel_path,
                )
                continue
            index[logical] = rel_path
        return index
