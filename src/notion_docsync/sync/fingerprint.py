"""Content fingerprints for change detection.

A fingerprint is the SHA-256 hex digest of normalised markdown.
Normalisation makes the digest insensitive to metadata that does not
change what a reader sees:

1. Strip a leading BOM (``\\ufeff``).
2. Replace ``\\r\\n`` and lone ``\\r`` with ``\\n``.
3. Right-strip each line.
4. Drop trailing empty lines.

Fingerprints are always computed over markdown before any sentinel block
is added, so a value taken on push is comparable with one taken on pull.
"""

from __future__ import annotations

import hashlib


def normalize_content(content: str) -> str:
    text = content.lstrip("\ufeff")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.rstrip() for line in text.split("\n")]
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def fingerprint(content: str) -> str:
    """Return the normalised SHA-256 hex digest of *content*."""
    return hashlib.sha256(
        normalize_content(content).encode("utf-8")
    ).hexdigest()
