"""Endpoint wrappers for the Feishu open platform.

* :class:`FeishuWikiAPI` -- wiki node listing, creation and lookup.
* :class:`FeishuDocxAPI` -- docx block children, descendants and patches.
* :class:`FeishuDriveAPI` -- media upload, likes and comments.
* :class:`FeishuBitableAPI` -- bitable record search and update.

Every method returns the envelope's ``data`` object (or a value extracted
from it); envelope and HTTP errors are raised by the transport.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from mdbridge.errors import MdBridgeUploadError
from mdbridge.models import RemoteNode

from .transport import FeishuTransport


class FeishuWikiAPI:
    """Wrapper for ``/wiki/v2``."""

    def __init__(self, transport: FeishuTransport, space_id: str) -> None:
        self._transport = transport
        self._space_id = space_id

    async def iter_nodes(self, parent_token: str) -> AsyncIterator[RemoteNode]:
        """Yield every node directly under *parent_token*, page by page."""
        async for item in self._transport.paginate(
            f"/wiki/v2/spaces/{self._space_id}/nodes",
            params={"parent_node_token": parent_token},
        ):
            yield RemoteNode.from_api(item, parent_token=parent_token)

    async def list_nodes(self, parent_token: str) -> list[RemoteNode]:
        return [node async for node in self.iter_nodes(parent_token)]

    async def create_node(
        self,
        parent_token: str,
        title: str,
        obj_type: str = "docx",
    ) -> RemoteNode:
        """Create an ``origin`` node titled *title* under *parent_token*."""
        data = await self._transport.request(
            "POST",
            f"/wiki/v2/spaces/{self._space_id}/nodes",
            json={
                "obj_type": obj_type,
                "parent_node_token": parent_token,
                "node_type": "origin",
                "title": title,
            },
        )
        node = data.get("node")
        if not node:
            raise MdBridgeUploadError(
                message=f"Wiki node creation returned no node for {title!r}.",
                context={"step": "create_node", "parent_token": parent_token},
            )
        return RemoteNode.from_api(node, parent_token=parent_token)


class FeishuDocxAPI:
    """Wrapper for ``/docx/v1`` block endpoints."""

    def __init__(self, transport: FeishuTransport) -> None:
        self._transport = transport

    async def append_children(
        self,
        document_id: str,
        children: list[dict[str, Any]],
        index: int | None = None,
        block_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Insert *children* under *block_id* (default: the page block).

        Returns
        -------
        list[dict]
            The created blocks, in order, each carrying its ``block_id``.
        """
        body: dict[str, Any] = {"children": children}
        if index is not None:
            body["index"] = index
        data = await self._transport.request(
            "POST",
            f"/docx/v1/documents/{document_id}/blocks/{block_id or document_id}/children",
            params={"document_revision_id": -1},
            json=body,
        )
        return data.get("children") or []

    async def create_descendants(
        self,
        document_id: str,
        payload: dict[str, Any],
        block_id: str | None = None,
    ) -> dict[str, Any]:
        """Create a nested block tree in one request."""
        return await self._transport.request(
            "POST",
            f"/docx/v1/documents/{document_id}/blocks/{block_id or document_id}/descendant",
            params={"document_revision_id": -1},
            json=payload,
        )

    async def patch_block(
        self,
        document_id: str,
        block_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._transport.request(
            "PATCH",
            f"/docx/v1/documents/{document_id}/blocks/{block_id}",
            params={"document_revision_id": -1},
            json=payload,
        )

    async def replace_image(self, document_id: str, block_id: str, file_token: str) -> dict[str, Any]:
        """Bind an uploaded media token to an image block."""
        return await self.patch_block(document_id, block_id, {"replace_image": {"token": file_token}})


class FeishuDriveAPI:
    """Wrapper for ``/drive`` media, likes and comments."""

    def __init__(self, transport: FeishuTransport) -> None:
        self._transport = transport

    async def upload_image(
        self,
        block_id: str,
        document_id: str,
        filename: str,
        data: bytes,
    ) -> str:
        """Upload PNG bytes as the media of an image block; return the file token."""
        result = await self._transport.request(
            "POST",
            "/drive/v1/medias/upload_all",
            data={
                "file_name": filename,
                "parent_type": "docx_image",
                "parent_node": block_id,
                "size": str(len(data)),
                "extra": json.dumps({"drive_route_token": document_id}),
            },
            files={"file": (filename, data, "image/png")},
        )
        token = result.get("file_token")
        if not token:
            raise MdBridgeUploadError(
                message="Media upload returned no file_token.",
                context={"step": "upload_media", "block_id": block_id},
            )
        return token

    async def list_likes(self, file_token: str, file_type: str = "docx") -> list[dict[str, Any]]:
        """Every like on a file, following pagination."""
        return [
            item async for item in self._transport.paginate(
                f"/drive/v2/files/{file_token}/likes",
                params={"file_type": file_type},
            )
        ]

    async def list_comments(
        self,
        file_token: str,
        file_type: str = "docx",
        *,
        is_whole: bool = False,
    ) -> list[dict[str, Any]]:
        """Comments on a file; ``is_whole`` selects whole-document comments."""
        return [
            item async for item in self._transport.paginate(
                f"/drive/v1/files/{file_token}/comments",
                params={"file_type": file_type, "is_whole": is_whole},
            )
        ]


class FeishuBitableAPI:
    """Wrapper for ``/bitable/v1`` table records."""

    def __init__(self, transport: FeishuTransport, app_token: str, table_id: str) -> None:
        self._transport = transport
        self._base = f"/bitable/v1/apps/{app_token}/tables/{table_id}/records"

    async def search_records(self, field_name: str, value: str) -> list[dict[str, Any]]:
        """Records whose *field_name* is exactly *value*."""
        data = await self._transport.request(
            "POST",
            f"{self._base}/search",
            json={
                "filter": {
                    "conjunction": "and",
                    "conditions": [
                        {"field_name": field_name, "operator": "is", "value": [value]},
                    ],
                },
            },
        )
        return data.get("items") or []

    async def update_record(self, record_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        return await self._transport.request("PUT", f"{self._base}/{record_id}", json={"fields": fields})
