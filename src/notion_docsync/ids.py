"""Notion id normalisation helpers."""

import re

_ID_PATTERN = re.compile(r"([0-9a-f]{32})")


def normalize_id(value: str) -> str:
    """Return a canonical, dash-free lowercase form of a page or block id.

    Accepts dashed UUIDs, bare 32-hex ids and Notion page URLs.  Values
    that contain no 32-hex run are returned lowercased and undashed.

    Examples:
        >>> normalize_id("1AB535D7-772C-8081-A7ED-FB3141EF4A62")
        '1ab535d7772c8081a7edfb3141ef4a62'
        >>> normalize_id("https://www.notion.so/Study-1ab535d7772c8081a7edfb3141ef4a62?pvs=4")
        '1ab535d7772c8081a7edfb3141ef4a62'
    """
    cleaned = value.strip().lower().split("?")[0].split("#")[0]
    match = _ID_PATTERN.search(cleaned.replace("-", ""))
    if match:
        return match.group(1)
    return cleaned.replace("-", "")


def same_id(a: str | None, b: str | None) -> bool:
    """Compare two ids regardless of dash formatting."""
    if a is None or b is None:
        return False
    return normalize_id(a) == normalize_id(b)
