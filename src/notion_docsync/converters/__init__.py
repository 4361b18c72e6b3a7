"""Format conversion between markdown, blocks and Notion payloads."""

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
)
from .blocks_to_markdown import blocks_to_markdown
from .markdown_to_blocks import markdown_to_blocks
from .notion_blocks import (
    PENDING_CREATE,
    PENDING_UPDATE,
    blocks_to_notion,
    find_sentinel,
    fingerprint_block,
    notion_to_blocks,
    page_fingerprint,
    read_fingerprint,
)

__all__ = [
    "PENDING_CREATE",
    "PENDING_UPDATE",
    "Blank",
    "Block",
    "Bold",
    "BulletedListItem",
    "Code",
    "Divider",
    "Heading",
    "InlineCode",
    "Italic",
    "Link",
    "NumberedListItem",
    "Paragraph",
    "Quote",
    "Span",
    "Text",
    "blocks_to_markdown",
    "blocks_to_notion",
    "find_sentinel",
    "fingerprint_block",
    "markdown_to_blocks",
    "notion_to_blocks",
    "page_fingerprint",
    "read_fingerprint",
]
