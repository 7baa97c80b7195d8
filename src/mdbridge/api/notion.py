"""Endpoint wrappers for the Notion API.

Thin async wrappers around the page, block-children and file-upload
endpoints that the notes-platform publisher uses.  Each takes a configured
:class:`~mdbridge.api.transport.NotionTransport`.
"""

from __future__ import annotations

from typing import Any

from .transport import NotionTransport


class PageAPI:
    """Wrapper for ``/pages``."""

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    async def create(self, parent_page_id: str, title: str) -> dict[str, Any]:
        """Create an empty child page titled *title*.

        Returns
        -------
        dict
            The page object, including ``id`` and ``url``.
        """
        body = {
            "parent": {"page_id": parent_page_id},
            "properties": {
                "title": {"title": [{"type": "text", "text": {"content": title}}]},
            },
        }
        return await self._transport.request("POST", "/pages", json=body)


class BlockAPI:
    """Wrapper for ``/blocks``."""

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    async def append_children(
        self,
        parent_id: str,
        children: list[dict[str, Any]],
        after: str | None = None,
    ) -> dict[str, Any]:
        """Append up to 100 blocks under *parent_id*.

        Parameters
        ----------
        parent_id:
            Page or block receiving the children.
        children:
            Block payloads, at most 100 per call.
        after:
            Insert after this block id instead of at the end.
        """
        body: dict[str, Any] = {"children": children}
        if after is not None:
            body["after"] = after
        return await self._transport.request("PATCH", f"/blocks/{parent_id}/children", json=body)


class FileAPI:
    """Wrapper for the single-part file upload flow.

    1. :meth:`create_upload` reserves an upload and returns its ``id``.
    2. :meth:`send` posts the bytes as ``multipart/form-data``.

    The returned id is then referenced from an ``image`` block as
    ``{"type": "file_upload", "file_upload": {"id": ...}}``.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    async def create_upload(self, filename: str, content_type: str) -> dict[str, Any]:
        body = {"filename": filename, "content_type": content_type}
        return await self._transport.request("POST", "/file_uploads", json=body)

    async def send(
        self,
        upload_id: str,
        filename: str,
        data: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        """Upload the file bytes; the response carries ``status: uploaded``."""
        return await self._transport.request(
            "POST",
            f"/file_uploads/{upload_id}/send",
            files={"file": (filename, data, content_type)},
        )

    async def upload(self, filename: str, data: bytes, content_type: str = "image/png") -> str:
        """Create and send an upload in one go, returning the upload id."""
        created = await self.create_upload(filename, content_type)
        upload_id = created["id"]
        await self.send(upload_id, filename, data, content_type)
        return upload_id
