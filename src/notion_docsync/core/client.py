import logging
import threading
import time
from typing import Any

import requests

from ..config import Config
from ..errors import RemoteStoreError, RemoteWriteFailed
from .store import PAGE_BLOCK_TYPES, RemoteNode

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.notion.com/v1"

# Notion accepts at most 100 children per append/create request.
BATCH_SIZE = 100
MAX_ATTEMPTS = 6


class NotionClient:
    """``RemoteStore`` implementation over the Notion REST API."""

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Return the current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.token}",
                "Notion-Version": self.config.api_version,
                "Content-Type": "application/json",
            }
        )
        return session

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        write: bool = False,
    ) -> dict[str, Any]:
        """
        Make a request to the Notion API.

        Rate limits (429) honour ``Retry-After``; server errors and
        connection failures back off exponentially.  Client errors are
        raised immediately.

        Raises:
            RemoteWriteFailed: If a write request fails (``write=True``).
            RemoteStoreError: If a read request fails.
        """
        error_cls = RemoteWriteFailed if write else RemoteStoreError
        url = f"{API_BASE_URL}{path}"
        session = self._get_session()

        for attempt in range(MAX_ATTEMPTS):
            last_attempt = attempt == MAX_ATTEMPTS - 1
            try:
                response = session.request(
                    method,
                    url,
                    json=payload,
                    params=params,
                    timeout=(10, self.config.timeout),
                )
            except requests.RequestException as exc:
                if last_attempt:
                    raise error_cls(
                        f"{method} {path} failed: {exc}"
                    ) from exc
                wait = min(2**attempt, 30)
                logger.warning(
                    "%s %s failed (%s), retrying in %ss",
                    method,
                    path,
                    exc,
                    wait,
                )
                time.sleep(wait)
                continue

            status = response.status_code
            if status == 429 and not last_attempt:
                wait = float(response.headers.get("Retry-After", 2**attempt))
                logger.warning("Rate limited, waiting %.0fs", wait)
                time.sleep(wait)
                continue
            if status >= 500 and not last_attempt:
                wait = min(2**attempt, 30)
                logger.warning(
                    "%s %s returned %s, retrying in %ss",
                    method,
                    path,
                    status,
                    wait,
                )
                time.sleep(wait)
                continue
            if status >= 400:
                raise error_cls(
                    f"{method} {path} returned {status}: "
                    f"{self._error_message(response)}",
                    status=status,
                )
            return response.json() if response.content else {}

        # Unreachable: the last attempt either returns or raises.
        raise error_cls(f"{method} {path} failed")

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        return str(body.get("message") or body.get("code") or body)

    def _paginate(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Collect every ``results`` item of a cursor-paginated endpoint."""
        results: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            if method == "GET":
                params: dict[str, Any] = {"page_size": BATCH_SIZE}
                if cursor:
                    params["start_cursor"] = cursor
                data = self._request(method, path, params=params)
            else:
                body = dict(payload or {})
                body["page_size"] = BATCH_SIZE
                if cursor:
                    body["start_cursor"] = cursor
                data = self._request(method, path, payload=body)
            results.extend(data.get("results", []))
            if not data.get("has_more"):
                return results
            cursor = data.get("next_cursor")

    @staticmethod
    def _node_from_page(page: dict[str, Any]) -> RemoteNode:
        title = ""
        for prop in (page.get("properties") or {}).values():
            if isinstance(prop, dict) and prop.get("type") == "title":
                title = "".join(
                    t.get("plain_text", "") for t in prop.get("title", [])
                )
                break
        parent = page.get("parent") or {}
        parent_id = parent.get("page_id") or parent.get("block_id")
        return RemoteNode(id=page["id"], title=title, parent_id=parent_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def validate_connection(self) -> str:
        """
        Validate the token by fetching the integration's bot user.
        Returns the bot name if successful.
        """
        me = self._request("GET", "/users/me")
        return str(me.get("name") or me.get("id") or "")

    def search_by_name(self, query: str) -> list[RemoteNode]:
        """
        Search pages whose title matches *query*.

        Notion search is fuzzy and eventually consistent; callers must
        filter for exact title and parent matches.
        """
        pages = self._paginate(
            "POST",
            "/search",
            {
                "query": query,
                "filter": {"property": "object", "value": "page"},
            },
        )
        return [
            self._node_from_page(p)
            for p in pages
            if p.get("object") == "page" and not p.get("archived")
        ]

    def get_node(self, node_id: str) -> RemoteNode:
        """Fetch page metadata."""
        return self._node_from_page(self._request("GET", f"/pages/{node_id}"))

    def list_children(self, node_id: str) -> list[dict[str, Any]]:
        """Return the ordered child blocks of a page or block."""
        return self._paginate("GET", f"/blocks/{node_id}/children")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _create_page(
        self,
        parent_id: str,
        title: str,
        children: list[dict[str, Any]] | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "parent": {"page_id": parent_id},
            "properties": {
                "title": {
                    "title": [{"type": "text", "text": {"content": title}}]
                }
            },
        }
        if children:
            payload["children"] = children
        page = self._request("POST", "/pages", payload=payload, write=True)
        return page["id"]

    def _append(self, block_id: str, blocks: list[dict[str, Any]]) -> None:
        for i in range(0, len(blocks), BATCH_SIZE):
            self._request(
                "PATCH",
                f"/blocks/{block_id}/children",
                payload={"children": blocks[i : i + BATCH_SIZE]},
                write=True,
            )

    def create_container(self, parent_id: str, name: str) -> str:
        """Create an empty page that groups other pages."""
        page_id = self._create_page(parent_id, name)
        logger.debug("Created container %s (%s)", name, page_id)
        return page_id

    def create_leaf(
        self, parent_id: str, title: str, blocks: list[dict[str, Any]]
    ) -> str:
        """
        Create a content page.

        The first batch of blocks is sent with the create request and the
        remainder appended in batches of ``BATCH_SIZE``.
        """
        page_id = self._create_page(parent_id, title, blocks[:BATCH_SIZE])
        if len(blocks) > BATCH_SIZE:
            self._append(page_id, blocks[BATCH_SIZE:])
        return page_id

    def replace_blocks(
        self, page_id: str, blocks: list[dict[str, Any]]
    ) -> None:
        """
        Replace a page's content: delete every content block, then append.

        Child pages and databases are left in place.
        """
        for child in self.list_children(page_id):
            if child.get("type") in PAGE_BLOCK_TYPES:
                continue
            self.delete_block(child["id"])
        self._append(page_id, blocks)

    def delete_block(self, block_id: str) -> None:
        self._request("DELETE", f"/blocks/{block_id}", write=True)

    def update_block(self, block_id: str, block: dict[str, Any]) -> None:
        """Overwrite one block with the content of *block* (same type)."""
        block_type = block["type"]
        self._request(
            "PATCH",
            f"/blocks/{block_id}",
            payload={block_type: block[block_type]},
            write=True,
        )

    def append_child(self, container_id: str, block: dict[str, Any]) -> str:
        """Append one block and return the id Notion assigned to it."""
        data = self._request(
            "PATCH",
            f"/blocks/{container_id}/children",
            payload={"children": [block]},
            write=True,
        )
        results = data.get("results") or []
        if not results:
            raise RemoteWriteFailed(
                f"Append to {container_id} returned no block"
            )
        return results[0]["id"]
