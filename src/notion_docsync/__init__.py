"""Two-way sync between a local markdown tree and a Notion page hierarchy."""

__version__ = "0.3.0"
