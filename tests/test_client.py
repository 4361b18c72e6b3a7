import json
from unittest.mock import Mock, patch

import pytest
import requests

from notion_docsync.config import DEFAULT_API_VERSION
from notion_docsync.core.client import API_BASE_URL, BATCH_SIZE, NotionClient
from notion_docsync.errors import RemoteStoreError, RemoteWriteFailed

_REQUEST = "notion_docsync.core.client.requests.Session.request"
_SLEEP = "notion_docsync.core.client.time.sleep"


def _response(status=200, body=None, headers=None):
    """Build a mock requests.Response carrying a JSON body."""
    response = Mock()
    response.status_code = status
    response.headers = headers or {}
    response.content = json.dumps(body).encode() if body is not None else b""
    response.json.return_value = body
    response.text = json.dumps(body) if body is not None else ""
    return response


def _page(page_id, title, parent="p0", archived=False):
    return {
        "object": "page",
        "id": page_id,
        "archived": archived,
        "parent": {"type": "page_id", "page_id": parent},
        "properties": {
            "title": {
                "type": "title",
                "title": [{"plain_text": title}],
            }
        },
    }


def _paragraph(block_id):
    return {"id": block_id, "type": "paragraph", "paragraph": {"rich_text": []}}


# Session
def test_session_headers(mock_config):
    """Session carries bearer auth and the API version header."""
    client = NotionClient(mock_config)
    headers = client.session.headers
    assert headers["Authorization"] == "Bearer secret_test_token"
    assert headers["Notion-Version"] == DEFAULT_API_VERSION
    assert headers["Content-Type"] == "application/json"


def test_session_reused_per_thread(mock_config):
    client = NotionClient(mock_config)
    assert client.session is client.session


# Reads
@patch(_REQUEST)
def test_validate_connection(mock_request, mock_config):
    mock_request.return_value = _response(body={"id": "u1", "name": "docsync"})

    assert NotionClient(mock_config).validate_connection() == "docsync"
    method, url = mock_request.call_args[0]
    assert method == "GET"
    assert url == f"{API_BASE_URL}/users/me"
    assert mock_request.call_args[1]["timeout"] == (10, 60)


@patch(_REQUEST)
def test_get_node(mock_request, mock_config):
    mock_request.return_value = _response(body=_page("p1", "Topic", parent="r"))

    node = NotionClient(mock_config).get_node("p1")
    assert node.id == "p1"
    assert node.title == "Topic"
    assert node.parent_id == "r"


@patch(_REQUEST)
def test_list_children_paginates(mock_request, mock_config):
    mock_request.side_effect = [
        _response(
            body={
                "results": [_paragraph("b1")],
                "has_more": True,
                "next_cursor": "c2",
            }
        ),
        _response(body={"results": [_paragraph("b2")], "has_more": False}),
    ]

    blocks = NotionClient(mock_config).list_children("p1")

    assert [b["id"] for b in blocks] == ["b1", "b2"]
    first, second = mock_request.call_args_list
    assert first[1]["params"] == {"page_size": BATCH_SIZE}
    assert second[1]["params"] == {"page_size": BATCH_SIZE, "start_cursor": "c2"}


@patch(_REQUEST)
def test_search_filters_archived(mock_request, mock_config):
    mock_request.return_value = _response(
        body={
            "results": [
                _page("p1", "notes"),
                _page("p2", "notes", archived=True),
            ],
            "has_more": False,
        }
    )

    nodes = NotionClient(mock_config).search_by_name("notes")

    assert [n.id for n in nodes] == ["p1"]
    payload = mock_request.call_args[1]["json"]
    assert payload["query"] == "notes"
    assert payload["filter"] == {"property": "object", "value": "page"}


# Error handling
@patch(_SLEEP)
@patch(_REQUEST)
def test_rate_limit_honours_retry_after(mock_request, mock_sleep, mock_config):
    mock_request.side_effect = [
        _response(429, {"code": "rate_limited"}, headers={"Retry-After": "3"}),
        _response(body={"name": "bot"}),
    ]

    assert NotionClient(mock_config).validate_connection() == "bot"
    mock_sleep.assert_called_once_with(3.0)


@patch(_SLEEP)
@patch(_REQUEST)
def test_server_error_retried(mock_request, mock_sleep, mock_config):
    mock_request.side_effect = [
        _response(502, {"message": "bad gateway"}),
        _response(503, {"message": "unavailable"}),
        _response(body=_page("p1", "x")),
    ]

    assert NotionClient(mock_config).get_node("p1").id == "p1"
    assert [c[0][0] for c in mock_sleep.call_args_list] == [1, 2]


@patch(_SLEEP)
@patch(_REQUEST)
def test_server_error_gives_up(mock_request, mock_sleep, mock_config):
    mock_request.return_value = _response(500, {"message": "boom"})

    with pytest.raises(RemoteStoreError) as exc_info:
        NotionClient(mock_config).get_node("p1")
    assert exc_info.value.status == 500
    assert mock_request.call_count == 6


@patch(_SLEEP)
@patch(_REQUEST)
def test_connection_error_retried(mock_request, mock_sleep, mock_config):
    mock_request.side_effect = [
        requests.ConnectionError("reset"),
        _response(body={"name": "bot"}),
    ]
    assert NotionClient(mock_config).validate_connection() == "bot"
    assert mock_sleep.call_count == 1


@patch(_SLEEP)
@patch(_REQUEST)
def test_client_error_not_retried(mock_request, mock_sleep, mock_config):
    mock_request.return_value = _response(
        404, {"code": "object_not_found", "message": "Could not find page"}
    )

    with pytest.raises(RemoteStoreError, match="Could not find page") as exc_info:
        NotionClient(mock_config).get_node("missing")
    assert not isinstance(exc_info.value, RemoteWriteFailed)
    assert exc_info.value.status == 404
    mock_sleep.assert_not_called()


@patch(_REQUEST)
def test_write_error_is_write_failed(mock_request, mock_config):
    mock_request.return_value = _response(400, {"message": "validation_error"})

    with pytest.raises(RemoteWriteFailed) as exc_info:
        NotionClient(mock_config).create_container("p0", "Topic")
    assert exc_info.value.status == 400


# Writes
@patch(_REQUEST)
def test_create_container_is_empty_page(mock_request, mock_config):
    mock_request.return_value = _response(body={"id": "new"})

    assert NotionClient(mock_config).create_container("p0", "Topic") == "new"
    method, url = mock_request.call_args[0]
    payload = mock_request.call_args[1]["json"]
    assert (method, url) == ("POST", f"{API_BASE_URL}/pages")
    assert payload["parent"] == {"page_id": "p0"}
    assert payload["properties"]["title"]["title"][0]["text"]["content"] == "Topic"
    assert "children" not in payload


@patch(_REQUEST)
def test_create_leaf_batches_blocks(mock_request, mock_config):
    mock_request.return_value = _response(body={"id": "leaf"})
    blocks = [_paragraph(f"b{i}") for i in range(BATCH_SIZE * 2 + 5)]

    assert NotionClient(mock_config).create_leaf("p0", "notes", blocks) == "leaf"

    calls = mock_request.call_args_list
    assert [c[0][0] for c in calls] == ["POST", "PATCH", "PATCH"]
    assert len(calls[0][1]["json"]["children"]) == BATCH_SIZE
    assert calls[1][0][1] == f"{API_BASE_URL}/blocks/leaf/children"
    assert len(calls[1][1]["json"]["children"]) == BATCH_SIZE
    assert len(calls[2][1]["json"]["children"]) == 5


@patch(_REQUEST)
def test_replace_blocks_keeps_child_pages(mock_request, mock_config):
    child_page = {"id": "cp", "type": "child_page", "child_page": {"title": "Sub"}}
    mock_request.side_effect = [
        _response(
            body={
                "results": [_paragraph("old1"), child_page, _paragraph("old2")],
                "has_more": False,
            }
        ),
        _response(body={}),
        _response(body={}),
        _response(body={"results": [{"id": "n1"}]}),
    ]

    NotionClient(mock_config).replace_blocks("p1", [_paragraph("n1")])

    calls = [c[0] for c in mock_request.call_args_list]
    assert calls == [
        ("GET", f"{API_BASE_URL}/blocks/p1/children"),
        ("DELETE", f"{API_BASE_URL}/blocks/old1"),
        ("DELETE", f"{API_BASE_URL}/blocks/old2"),
        ("PATCH", f"{API_BASE_URL}/blocks/p1/children"),
    ]


@patch(_REQUEST)
def test_update_block_patches_content_in_place(mock_request, mock_config):
    mock_request.return_value = _response(body={"id": "s1"})
    block = {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": "x"}}]},
    }

    NotionClient(mock_config).update_block("s1", block)

    method, url = mock_request.call_args[0]
    assert (method, url) == ("PATCH", f"{API_BASE_URL}/blocks/s1")
    assert mock_request.call_args[1]["json"] == {"paragraph": block["paragraph"]}


@patch(_REQUEST)
def test_append_child_returns_block_id(mock_request, mock_config):
    mock_request.return_value = _response(body={"results": [{"id": "entry"}]})

    block = {"type": "link_to_page", "link_to_page": {"page_id": "p9"}}
    assert NotionClient(mock_config).append_child("toggle", block) == "entry"
    assert mock_request.call_args[1]["json"] == {"children": [block]}


@patch(_REQUEST)
def test_append_child_without_result_fails(mock_request, mock_config):
    mock_request.return_value = _response(body={"results": []})

    with pytest.raises(RemoteWriteFailed):
        NotionClient(mock_config).append_child("toggle", _paragraph("x"))
