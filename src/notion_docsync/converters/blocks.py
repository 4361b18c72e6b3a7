"""Structural block model shared by the markdown and Notion codecs.

A document is an ordered list of ``Block`` values; text-bearing blocks carry
an ordered tuple of ``Span`` values.  Both unions are closed: converters
dispatch on them with ``match`` and raise ``TypeError`` on anything else, so
a new variant has to be handled everywhere it is consumed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# =============================================================================
# Inline spans
# =============================================================================


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Bold:
    text: str


@dataclass(frozen=True)
class Italic:
    text: str


@dataclass(frozen=True)
class InlineCode:
    text: str


@dataclass(frozen=True)
class Link:
    text: str
    url: str


Span = Union[Text, Bold, Italic, InlineCode, Link]

# =============================================================================
# Blocks
# =============================================================================


@dataclass(frozen=True)
class Heading:
    level: int
    spans: tuple[Span, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= self.level <= 6:
            raise ValueError(
                f"Heading level must be between 1 and 6, got {self.level}"
            )


@dataclass(frozen=True)
class Paragraph:
    spans: tuple[Span, ...] = ()


@dataclass(frozen=True)
class Code:
    text: str
    language: str = ""


@dataclass(frozen=True)
class BulletedListItem:
    spans: tuple[Span, ...] = ()


@dataclass(frozen=True)
class NumberedListItem:
    spans: tuple[Span, ...] = ()


@dataclass(frozen=True)
class Quote:
    spans: tuple[Span, ...] = ()


@dataclass(frozen=True)
class Divider:
    pass


@dataclass(frozen=True)
class Blank:
    pass


Block = Union[
    Heading,
    Paragraph,
    Code,
    BulletedListItem,
    NumberedListItem,
    Quote,
    Divider,
    Blank,
]

ListItem = (BulletedListItem, NumberedListItem)


def merge_spans(spans: list[Span]) -> tuple[Span, ...]:
    """Merge adjacent spans of the same style and drop empty ones.

    Links merge only when they point at the same URL.
    """
    merged: list[Span] = []
    for span in spans:
        if not span.text:
            continue
        if merged:
            last = merged[-1]
            if type(last) is type(span) and (
                not isinstance(span, Link)
                or (isinstance(last, Link) and last.url == span.url)
            ):
                if isinstance(span, Link):
                    merged[-1] = Link(last.text + span.text, span.url)
                else:
                    merged[-1] = type(span)(last.text + span.text)
                continue
        merged.append(span)
    return tuple(merged)


def plain_text(spans: tuple[Span, ...]) -> str:
    """Concatenate the literal text of *spans*, dropping all formatting."""
    return "".join(span.text for span in spans)
