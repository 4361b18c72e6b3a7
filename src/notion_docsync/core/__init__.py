"""Remote store contract and the Notion client implementing it."""

from .client import NotionClient
from .store import RemoteNode, RemoteStore

__all__ = ["NotionClient", "RemoteNode", "RemoteStore"]
