"""Markdown to block conversion using the mistune AST."""

from __future__ import annotations

import logging
from typing import Any

import mistune

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
)

logger = logging.getLogger(__name__)

_parse = mistune.create_markdown(renderer="ast")


class BlockBuilder:
    """Walk mistune AST tokens and emit a flat list of ``Block`` values.

    Lists are flattened: every item, at any nesting depth, becomes one
    standalone list-item block followed by the items of its nested lists.
    Nested inline formatting is flattened to the outermost style.
    """

    def __init__(self) -> None:
        self.blocks: list[Block] = []

    def build(self, tokens: list[dict[str, Any]]) -> list[Block]:
        for token in tokens:
            self._block(token)
        return self.blocks

    # ------------------------------------------------------------------
    # Block tokens
    # ------------------------------------------------------------------

    def _block(self, token: dict[str, Any]) -> None:
        token_type = token.get("type")

        if token_type == "blank_line":
            return
        if token_type == "heading":
            level = token.get("attrs", {}).get("level", 1)
            self.blocks.append(Heading(level, self._spans(token)))
        elif token_type == "paragraph":
            self.blocks.append(Paragraph(self._spans(token)))
        elif token_type == "block_code":
            info = (token.get("attrs") or {}).get("info") or ""
            code = token.get("raw", "")
            if code.endswith("\n"):
                code = code[:-1]
            self.blocks.append(Code(code, info.strip()))
        elif token_type == "list":
            self._list(token)
        elif token_type == "block_quote":
            self.blocks.append(Quote(self._quote_spans(token)))
        elif token_type == "thematic_break":
            self.blocks.append(Divider())
        elif token_type == "block_html":
            raw = token.get("raw", "").strip("\n")
            self.blocks.append(Paragraph(merge_spans([Text(raw)])))
        elif token_type == "block_text":
            self.blocks.append(Paragraph(self._spans(token)))
        else:
            raise DecodeFailed(f"Unsupported markdown element: {token_type}")

    def _list(self, token: dict[str, Any]) -> None:
        ordered = token.get("attrs", {}).get("ordered", False)
        item_cls = NumberedListItem if ordered else BulletedListItem

        for item in token.get("children", []):
            if item.get("type") != "list_item":
                self._block(item)
                continue

            emitted = False
            trailing: list[dict[str, Any]] = []
            nested: list[dict[str, Any]] = []
            for child in item.get("children", []):
                child_type = child.get("type")
                if child_type == "list":
                    nested.append(child)
                elif child_type in ("block_text", "paragraph") and not emitted:
                    self.blocks.append(item_cls(self._spans(child)))
                    emitted = True
                elif child_type != "blank_line":
                    trailing.append(child)

            if not emitted:
                self.blocks.append(item_cls())
            for child in trailing:
                self._block(child)
            for child in nested:
                self._list(child)

    def _quote_spans(self, token: dict[str, Any]) -> tuple[Span, ...]:
        spans: list[Span] = []
        for child in token.get("children", []):
            if child.get("type") == "blank_line":
                continue
            if spans:
                spans.append(Text("\n\n"))
            if child.get("type") == "block_quote":
                spans.extend(self._quote_spans(child))
            elif child.get("type") == "list":
                spans.append(Text("\n".join(_list_lines(child))))
            elif "children" in child:
                spans.extend(self._spans(child))
            else:
                spans.append(Text(_flatten_text(child)))
        return merge_spans(spans)

    # ------------------------------------------------------------------
    # Inline tokens
    # ------------------------------------------------------------------

    def _spans(self, token: dict[str, Any]) -> tuple[Span, ...]:
        spans: list[Span] = []
        for child in token.get("children", []):
            spans.append(self._inline(child))
        return merge_spans(spans)

    def _inline(self, token: dict[str, Any]) -> Span:
        match token.get("type"):
            case "text" | "inline_html":
                return Text(token.get("raw", ""))
            case "strong":
                return Bold(_flatten_text(token))
            case "emphasis":
                return Italic(_flatten_text(token))
            case "codespan":
                return InlineCode(token.get("raw", ""))
            case "link":
                url = token.get("attrs", {}).get("url", "")
                return Link(_flatten_text(token), url)
            case "image":
                url = token.get("attrs", {}).get("url", "")
                return Link(_flatten_text(token) or url, url)
            case "softbreak" | "linebreak":
                return Text("\n")
            case other:
                logger.debug("Treating inline element %s as text", other)
                return Text(_flatten_text(token))


def _flatten_text(token: dict[str, Any]) -> str:
    """Return the literal text below *token*, ignoring formatting."""
    if token.get("type") in ("softbreak", "linebreak"):
        return "\n"
    if "children" in token:
        return "".join(_flatten_text(c) for c in token["children"])
    return token.get("raw", "")


def _list_lines(token: dict[str, Any]) -> list[str]:
    """Render a list found inside a quote as one marked line per item.

    Nested lists are indented by two spaces below their parent item.
    """
    attrs = token.get("attrs") or {}
    ordered = attrs.get("ordered", False)
    number = attrs.get("start", 1)
    lines: list[str] = []
    for item in token.get("children", []):
        if item.get("type") != "list_item":
            continue
        marker = f"{number}." if ordered else "-"
        number += 1
        text: list[str] = []
        nested: list[str] = []
        for child in item.get("children", []):
            if child.get("type") == "list":
                nested.extend("  " + line for line in _list_lines(child))
            elif child.get("type") != "blank_line":
                text.append(_flatten_text(child))
        lines.append(f"{marker} {' '.join(text)}".rstrip())
        lines.extend(nested)
    return lines


def markdown_to_blocks(markdown_text: str) -> list[Block]:
    """Convert markdown text to an ordered list of blocks.

    Whitespace-only input yields a single ``Blank`` block.

    Args:
        markdown_text: Markdown formatted text.

    Returns:
        List of ``Block`` values in document order.

    Raises:
        DecodeFailed: If the markdown contains an element that cannot be
            represented as a block.
    """
    if not markdown_text.strip():
        return [Blank()]

    try:
        tokens = _parse(markdown_text)
    except Exception as exc:
        raise DecodeFailed(f"Could not parse markdown: {exc}") from exc

    return BlockBuilder().build(tokens)  # type: ignore[arg-type]
