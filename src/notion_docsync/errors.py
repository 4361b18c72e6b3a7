"""Typed exception hierarchy for notion-docsync.

All per-document failures raised inside a sync run derive from
``DocSyncError`` so the reconciler can turn them into report entries.
``RootUnavailable`` is the only error that aborts a whole run.
"""


class DocSyncError(Exception):
    """Base exception for all notion-docsync errors."""


class LookupAmbiguous(DocSyncError):
    """Raised when a name search returned candidates but none matched exactly.

    Callers treat this as "not found", never as a failure.
    """

    def __init__(self, name: str, parent_id: str, candidates: int):
        super().__init__(
            f"{candidates} candidate(s) for '{name}' but none under parent {parent_id}"
        )
        self.name = name
        self.parent_id = parent_id
        self.candidates = candidates


class RemoteStoreError(DocSyncError):
    """Raised when a call to the remote store fails."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemoteWriteFailed(RemoteStoreError):
    """Raised when a create, replace, delete or append call fails."""


class DecodeFailed(DocSyncError):
    """Raised when markdown or a block payload cannot be converted."""


class LocalIOFailed(DocSyncError):
    """Raised when reading or writing a local file fails."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class RootUnavailable(DocSyncError):
    """Raised when the root anchor page cannot be fetched at run start."""

    def __init__(self, root_id: str, reason: str):
        super().__init__(f"Root page {root_id} is unavailable: {reason}")
        self.root_id = root_id
