"""Block to markdown rendering.

Literal text is escaped so that it parses back as the same text: inline
markup characters always, and block markers only at the start of a line.
"""

from __future__ import annotations

import re

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
    ListItem,
    NumberedListItem,
    Paragraph,
    Quote,
    Span,
    Text,
)

# Characters that open or close inline markup anywhere in a line.  An
# underscore only acts at a word boundary, so ``snake_case`` stays as is.
_INLINE_SPECIAL = re.compile(r"[\\`*\[\]<]|(?<![A-Za-z0-9])_|_(?![A-Za-z0-9])")

# Block markers, recognised after up to three spaces of indentation.
_LINE_MARKER = re.compile(r"^( {0,3})([#>+=~-])")
_LINE_ORDINAL = re.compile(r"^( {0,3})(\d{1,9})([.)])")


def escape_inline(text: str) -> str:
    """Backslash-escape characters that would start inline markup."""
    return _INLINE_SPECIAL.sub(lambda m: "\\" + m.group(0), text)


def escape_line_start(line: str) -> str:
    """Backslash-escape a heading, quote, list or fence marker at line start."""
    line = _LINE_MARKER.sub(r"\1\\\2", line)
    return _LINE_ORDINAL.sub(r"\1\2\\\3", line)


def escape_text(text: str, at_line_start: bool = True) -> str:
    """Escape literal text for markdown output.

    Args:
        text: Literal text, possibly spanning several lines.
        at_line_start: Whether the first line begins a markdown line.
    """
    lines = escape_inline(text).split("\n")
    return "\n".join(
        escape_line_start(line) if i or at_line_start else line
        for i, line in enumerate(lines)
    )


def render_span(span: Span, at_line_start: bool = False) -> str:
    """Render one inline span as markdown."""
    match span:
        case Text(text=text):
            return escape_text(text, at_line_start)
        case Bold(text=text):
            return f"**{escape_inline(text)}**"
        case Italic(text=text):
            return f"*{escape_inline(text)}*"
        case InlineCode(text=text):
            return f"`{text}`"
        case Link(text=text, url=url):
            return f"[{escape_inline(text)}]({url})"
        case _:
            raise TypeError(f"Unknown span: {span!r}")


def render_spans(spans: tuple[Span, ...]) -> str:
    out = ""
    for span in spans:
        out += render_span(span, at_line_start=not out or out.endswith("\n"))
    return out


def render_block(block: Block, number: int = 1) -> str:
    """Render one block as markdown without surrounding blank lines.

    Args:
        block: The block to render.
        number: Ordinal used for numbered list items.
    """
    match block:
        case Heading(level=level, spans=spans):
            return f"{'#' * level} {render_spans(spans)}"
        case Paragraph(spans=spans):
            return render_spans(spans)
        case Code(text=text, language=language):
            return f"```{language}\n{text}\n```"
        case BulletedListItem(spans=spans):
            return f"- {render_spans(spans)}".rstrip()
        case NumberedListItem(spans=spans):
            return f"{number}. {render_spans(spans)}".rstrip()
        case Quote(spans=spans):
            lines = render_spans(spans).split("\n")
            return "\n".join(f"> {line}" if line else ">" for line in lines)
        case Divider():
            return "---"
        case Blank():
            return ""
        case _:
            raise TypeError(f"Unknown block: {block!r}")


def blocks_to_markdown(blocks: list[Block]) -> str:
    """Render an ordered block list as markdown text.

    Blocks are separated by one blank line, except consecutive list items
    of the same kind which are separated by a single newline.  A ``Blank``
    block contributes exactly one extra blank line.  Numbered items are
    renumbered from 1 within each consecutive run.

    Args:
        blocks: Blocks in document order.

    Returns:
        Markdown text without leading or trailing newlines.
    """
    out = ""
    previous: Block | None = None
    number = 0

    for block in blocks:
        if isinstance(block, Blank):
            out += "\n"
            previous = block
            number = 0
            continue

        if isinstance(block, NumberedListItem):
            number = number + 1 if isinstance(previous, NumberedListItem) else 1
        else:
            number = 0

        if out:
            if isinstance(block, ListItem) and type(previous) is type(block):
                out += "\n"
            else:
                out += "\n\n"
        out += render_block(block, number)
        previous = block

    return out.strip("\n")
