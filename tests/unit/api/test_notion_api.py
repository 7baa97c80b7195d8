"""Unit tests for PageAPI, BlockAPI and FileAPI.

All HTTP calls go through a transport mock (MagicMock / AsyncMock).
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, call

from mdbridge.api.notion import BlockAPI, FileAPI, PageAPI


def make_transport(*returns):
    t = MagicMock()
    t.request = AsyncMock(side_effect=list(returns))
    return t


class TestPageAPI:
    async def test_create(self):
        t = make_transport({"id": "pg-1", "url": "https://notion.so/pg1"})
        page = await PageAPI(t).create("parent", "Intro")

        t.request.assert_awaited_once_with(
            "POST",
            "/pages",
            json={
                "parent": {"page_id": "parent"},
                "properties": {"title": {"title": [{"type": "text", "text": {"content": "Intro"}}]}},
            },
        )
        assert page["id"] == "pg-1"


class TestBlockAPI:
    async def test_append_children(self):
        t = make_transport({"results": [{"id": "b1"}, {"id": "b2"}]})
        resp = await BlockAPI(t).append_children("pg", [{"type": "divider"}])
        assert [b["id"] for b in resp["results"]] == ["b1", "b2"]

        t.request.assert_awaited_once_with(
            "PATCH", "/blocks/pg/children", json={"children": [{"type": "divider"}]},
        )

    async def test_append_after(self):
        t = make_transport({})
        await BlockAPI(t).append_children("pg", [], after="b0")
        assert t.request.call_args.kwargs["json"]["after"] == "b0"


class TestFileAPI:
    async def test_upload_creates_then_sends(self):
        t = make_transport({"id": "upl-1"}, {"status": "uploaded"})
        upload_id = await FileAPI(t).upload("flow.png", b"PNG")

        assert upload_id == "upl-1"
        assert t.request.await_args_list == [
            call("POST", "/file_uploads", json={"filename": "flow.png", "content_type": "image/png"}),
            call("POST", "/file_uploads/upl-1/send", files={"file": ("flow.png", b"PNG", "image/png")}),
        ]
