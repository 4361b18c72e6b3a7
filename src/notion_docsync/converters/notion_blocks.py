"""Conversion between ``Block`` values and Notion block payloads.

Also owns the fingerprint sentinel: the first content block of every page
is a paragraph carrying the fingerprint of the markdown that produced the
page, and is dropped when the page is decoded.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.store import PAGE_BLOCK_TYPES
from ..errors import DecodeFailed
from .blocks import (
    Blank,
    Block,
    Bold,
    BulletedListItem,
    Code,
    Divider,
    Heading,
    InlineCode,
    Italic,
    Link,
    NumberedListItem,
    Paragraph,
    Quote,
    Span,
    Text,
    merge_spans,
    plain_text,
)

logger = logging.getLogger(__name__)

# Notion rejects rich-text items longer than this.
MAX_TEXT_LENGTH = 2000

SENTINEL_PREFIX = "notion-docsync:sha256:"

# Written in place of the fingerprint while a page's content is being
# uploaded and sealed with the real value once every batch has landed.
# Neither can equal a hex digest, so an interrupted upload always reads
# as changed.
PENDING_CREATE = "pending-create"
PENDING_UPDATE = "pending-update"

# =============================================================================
# Code Block Language Mapping
# =============================================================================
#
# Markdown fence tags are free-form, Notion accepts a fixed vocabulary.
# Aliases are normalised on the way out; when the Notion name differs from
# the tag, the verbatim tag travels in the block caption so decoding can
# restore it exactly.
# =============================================================================

_MARKDOWN_TO_NOTION_MAP: dict[str, str] = {
    "": "plain text",
    "text": "plain text",
    "txt": "plain text",
    "plain": "plain text",
    "plaintext": "plain text",
    "sh": "shell",
    "zsh": "shell",
    "console": "shell",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "cpp": "c++",
    "cxx": "c++",
    "cs": "c#",
    "csharp": "c#",
    "fs": "f#",
    "fsharp": "f#",
    "yml": "yaml",
    "md": "markdown",
    "dockerfile": "docker",
    "objc": "objective-c",
    "ps1": "powershell",
    "tex": "latex",
    "golang": "go",
    "kt": "kotlin",
}

_NOTION_LANGUAGES: frozenset[str] = frozenset(
    {
        "abap",
        "bash",
        "basic",
        "c",
        "c#",
        "c++",
        "clojure",
        "coffeescript",
        "css",
        "dart",
        "diff",
        "docker",
        "elixir",
        "elm",
        "erlang",
        "f#",
        "go",
        "graphql",
        "groovy",
        "haskell",
        "html",
        "java",
        "javascript",
        "json",
        "julia",
        "kotlin",
        "latex",
        "less",
        "lisp",
        "lua",
        "makefile",
        "markdown",
        "matlab",
        "mermaid",
        "nix",
        "objective-c",
        "ocaml",
        "perl",
        "php",
        "plain text",
        "powershell",
        "prolog",
        "protobuf",
        "python",
        "r",
        "ruby",
        "rust",
        "sass",
        "scala",
        "scheme",
        "scss",
        "shell",
        "sql",
        "swift",
        "toml",
        "typescript",
        "xml",
        "yaml",
    }
)


def markdown_to_notion_lang(lang: str) -> str:
    """Map a markdown fence tag onto Notion's code language vocabulary.

    Examples:
        >>> markdown_to_notion_lang("js")
        'javascript'
        >>> markdown_to_notion_lang("python")
        'python'
        >>> markdown_to_notion_lang("brainfuck")
        'plain text'
    """
    lang_lower = lang.strip().lower()
    if lang_lower in _MARKDOWN_TO_NOTION_MAP:
        return _MARKDOWN_TO_NOTION_MAP[lang_lower]
    if lang_lower in _NOTION_LANGUAGES:
        return lang_lower
    return "plain text"


def notion_to_markdown_lang(language: str, caption: str = "") -> str:
    """Recover the markdown fence tag for a Notion code block.

    A non-empty caption holds the verbatim tag and always wins.
    """
    if caption:
        return caption
    if language == "plain text":
        return ""
    return language


# =============================================================================
# Rich text
# =============================================================================


def _rich_text_item(
    content: str,
    bold: bool = False,
    italic: bool = False,
    code: bool = False,
    url: str | None = None,
) -> dict[str, Any]:
    return {
        "type": "text",
        "text": {
            "content": content,
            "link": {"url": url} if url else None,
        },
        "annotations": {
            "bold": bold,
            "italic": italic,
            "strikethrough": False,
            "underline": False,
            "code": code,
            "color": "default",
        },
    }


def _chunks(text: str) -> list[str]:
    return [
        text[i : i + MAX_TEXT_LENGTH]
        for i in range(0, len(text), MAX_TEXT_LENGTH)
    ]


def spans_to_rich_text(spans: tuple[Span, ...]) -> list[dict[str, Any]]:
    """Encode spans as Notion rich-text items, splitting long runs."""
    items: list[dict[str, Any]] = []
    for span in spans:
        match span:
            case Text():
                kwargs: dict[str, Any] = {}
            case Bold():
                kwargs = {"bold": True}
            case Italic():
                kwargs = {"italic": True}
            case InlineCode():
                kwargs = {"code": True}
            case Link(url=url):
                kwargs = {"url": url}
            case _:
                raise TypeError(f"Unknown span: {span!r}")
        for chunk in _chunks(span.text):
            items.append(_rich_text_item(chunk, **kwargs))
    return items


def rich_text_to_spans(items: list[dict[str, Any]]) -> tuple[Span, ...]:
    """Decode Notion rich-text items into merged spans.

    Items carrying several annotations keep the strongest one
    (link, then code, then bold, then italic).
    """
    spans: list[Span] = []
    for item in items:
        if not isinstance(item, dict):
            raise DecodeFailed(f"Malformed rich text item: {item!r}")
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        annotations = item.get("annotations") or {}
        link = (item.get("text") or {}).get("link") or {}
        url = link.get("url") or item.get("href")

        if url:
            spans.append(Link(text, url))
        elif annotations.get("code"):
            spans.append(InlineCode(text))
        elif annotations.get("bold"):
            spans.append(Bold(text))
        elif annotations.get("italic"):
            spans.append(Italic(text))
        else:
            spans.append(Text(text))
    return merge_spans(spans)


# =============================================================================
# Blocks
# =============================================================================


def _text_block(block_type: str, spans: tuple[Span, ...]) -> dict[str, Any]:
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": spans_to_rich_text(spans)},
    }


def block_to_notion(block: Block) -> dict[str, Any]:
    """Encode one block as a Notion block payload.

    Heading levels 4-6 are written as ``heading_3``; Notion has no deeper
    heading type.
    """
    match block:
        case Heading(level=level, spans=spans):
            return _text_block(f"heading_{min(level, 3)}", spans)
        case Paragraph(spans=spans):
            return _text_block("paragraph", spans)
        case Code(text=text, language=language):
            notion_lang = markdown_to_notion_lang(language)
            caption = []
            if language and notion_lang != language:
                caption = [_rich_text_item(language)]
            return {
                "object": "block",
                "type": "code",
                "code": {
                    "rich_text": spans_to_rich_text((Text(text),)),
                    "language": notion_lang,
                    "caption": caption,
                },
            }
        case BulletedListItem(spans=spans):
            return _text_block("bulleted_list_item", spans)
        case NumberedListItem(spans=spans):
            return _text_block("numbered_list_item", spans)
        case Quote(spans=spans):
            return _text_block("quote", spans)
        case Divider():
            return {"object": "block", "type": "divider", "divider": {}}
        case Blank():
            return _text_block("paragraph", ())
        case _:
            raise TypeError(f"Unknown block: {block!r}")


def blocks_to_notion(blocks: list[Block]) -> list[dict[str, Any]]:
    return [block_to_notion(b) for b in blocks]


_TEXT_BLOCK_TYPES: dict[str, type] = {
    "paragraph": Paragraph,
    "bulleted_list_item": BulletedListItem,
    "numbered_list_item": NumberedListItem,
    "quote": Quote,
}


def notion_to_block(raw: dict[str, Any]) -> Block | None:
    """Decode one Notion block payload.

    Returns:
        The decoded block, or ``None`` for block types with no markdown
        counterpart (images, child pages, tables, ...).

    Raises:
        DecodeFailed: If a supported block type has a malformed payload.
    """
    block_type = raw.get("type")
    payload = raw.get(block_type) if isinstance(block_type, str) else None

    if block_type == "divider":
        return Divider()

    if block_type not in _TEXT_BLOCK_TYPES and block_type not in (
        "heading_1",
        "heading_2",
        "heading_3",
        "code",
    ):
        logger.debug("Skipping unsupported block type %s", block_type)
        return None

    if not isinstance(payload, dict) or not isinstance(
        payload.get("rich_text"), list
    ):
        raise DecodeFailed(
            f"Block {raw.get('id', '?')} of type {block_type} has no rich_text"
        )
    spans = rich_text_to_spans(payload["rich_text"])

    if block_type == "code":
        caption = plain_text(rich_text_to_spans(payload.get("caption") or []))
        language = notion_to_markdown_lang(
            payload.get("language") or "plain text", caption
        )
        return Code(plain_text(spans), language)

    if block_type.startswith("heading_"):
        return Heading(int(block_type[-1]), spans)

    if block_type == "paragraph" and not spans:
        return Blank()

    return _TEXT_BLOCK_TYPES[block_type](spans)


def notion_to_blocks(raw_blocks: list[dict[str, Any]]) -> list[Block]:
    """Decode a page's block payloads, dropping the fingerprint sentinel.

    Only the first content block can be the sentinel; a later paragraph
    that happens to look like one is ordinary content.
    """
    sentinel = find_sentinel(raw_blocks)
    blocks: list[Block] = []
    for raw in raw_blocks:
        if raw is sentinel:
            continue
        block = notion_to_block(raw)
        if block is not None:
            blocks.append(block)
    return blocks


# =============================================================================
# Fingerprint sentinel
# =============================================================================


def fingerprint_block(fingerprint: str) -> dict[str, Any]:
    """Build the sentinel paragraph that records a page's fingerprint."""
    return _text_block(
        "paragraph", (InlineCode(f"{SENTINEL_PREFIX}{fingerprint}"),)
    )


def read_fingerprint(raw: dict[str, Any]) -> str | None:
    """Return the fingerprint held by a sentinel block, or ``None``."""
    if raw.get("type") != "paragraph":
        return None
    items = (raw.get("paragraph") or {}).get("rich_text") or []
    text = "".join(
        item.get("plain_text")
        or (item.get("text") or {}).get("content", "")
        for item in items
        if isinstance(item, dict)
    )
    if not text.startswith(SENTINEL_PREFIX):
        return None
    return text[len(SENTINEL_PREFIX) :].strip() or None


def find_sentinel(raw_blocks: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Return the sentinel block of a page, or ``None``.

    The sentinel is the first block that is not a child page or database.
    Child pages stay in place when content is replaced, so the new
    content, sentinel first, follows them.
    """
    for raw in raw_blocks:
        if raw.get("type") in PAGE_BLOCK_TYPES:
            continue
        return raw if read_fingerprint(raw) is not None else None
    return None


def page_fingerprint(raw_blocks: list[dict[str, Any]]) -> str | None:
    """Return the fingerprint recorded on a page, or ``None``."""
    sentinel = find_sentinel(raw_blocks)
    return read_fingerprint(sentinel) if sentinel is not None else None
