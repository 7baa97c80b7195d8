"""Publish Markdown documents into a Feishu wiki.

For every source file the wiki gets:

* one parent node titled after the file (created on first publish, found by
  title afterwards),
* one dated child node ``YYYY-MM-DD_<name>`` per upload holding the
  converted content,
* a link paragraph to the child inserted at the top of the parent.

When a bitable index is configured, the record whose ``Title`` equals the
file name gets its ``Content`` link and modified time updated.

Usage::

    async with FeishuPublisher(config) as publisher:
        await publisher.preload()
        result = await publisher.publish(markdown, "intro")
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any

from mdbridge.api.feishu import FeishuBitableAPI, FeishuDocxAPI, FeishuDriveAPI, FeishuWikiAPI
from mdbridge.api.transport import FeishuTransport
from mdbridge.cache import NodeCache
from mdbridge.config import MdBridgeConfig
from mdbridge.converter import feishu_blocks
from mdbridge.converter.classifier import classify
from mdbridge.errors import MdBridgeConversionError, MdBridgeUploadError
from mdbridge.models import Block, BlockKind, ConversionWarning, DocumentResult, FigureDirective, RemoteNode
from mdbridge.observability import get_logger
from mdbridge.render import DiagramRenderer
from mdbridge.uploader import BlockUploader

log = get_logger("mdbridge.publishers.feishu")

_UNSAFE_FILENAME_RE = re.compile(r"[^\w.-]+")


def image_filename(title: str) -> str:
    """PNG file name derived from a figure title."""
    stem = _UNSAFE_FILENAME_RE.sub("_", title).strip("_")
    return f"{stem or 'diagram'}.png"


class FeishuBlockSink:
    """:class:`~mdbridge.uploader.BlockSink` for docx documents."""

    platform = "feishu"

    def __init__(
        self,
        docx: FeishuDocxAPI,
        drive: FeishuDriveAPI,
        renderer: DiagramRenderer,
        batch_size: int = 50,
    ) -> None:
        self._docx = docx
        self._drive = drive
        self._renderer = renderer
        self.batch_size = batch_size

    def render(self, block: Block) -> dict[str, Any]:
        return feishu_blocks.render_block(block)

    async def append(self, document_id: str, payloads: list[dict[str, Any]], index: int) -> None:
        await self._docx.append_children(document_id, payloads, index=index)

    async def place_figure(self, document_id: str, block: Block, index: int) -> int:
        if block.kind == BlockKind.TABLE and block.table is not None:
            payload = feishu_blocks.build_table_descendants(block.table, index, prefix=f"tbl{index}")
            await self._docx.create_descendants(document_id, payload)
            return 1
        if block.kind == BlockKind.FIGURE and block.figure is not None:
            return await self._place_diagram(document_id, block.figure, index)
        raise MdBridgeConversionError(
            message=f"Block kind {block.kind.value!r} is not a figure.",
            context={"kind": block.kind.value},
        )

    async def _place_diagram(self, document_id: str, figure: FigureDirective, index: int) -> int:
        # Render first so a renderer failure leaves no empty image block.
        png = await self._renderer.render(figure.content)

        created = await self._docx.append_children(
            document_id, [feishu_blocks.image_placeholder()], index=index,
        )
        block_id = created[0].get("block_id") if created else None
        if not block_id:
            raise MdBridgeUploadError(
                message="Image placeholder creation returned no block id.",
                context={"document_id": document_id, "step": "image_placeholder"},
            )
        file_token = await self._drive.upload_image(
            block_id, document_id, image_filename(figure.title), png,
        )
        await self._docx.replace_image(document_id, block_id, file_token)
        return 1


class FeishuPublisher:
    """Async client that publishes documents into one wiki space.

    Parameters
    ----------
    config:
        Run configuration; Feishu credentials must be set.
    renderer:
        Diagram renderer; built from the config when omitted.
    cache:
        Node listing cache shared with other components of the run.
    """

    def __init__(
        self,
        config: MdBridgeConfig,
        *,
        renderer: DiagramRenderer | None = None,
        cache: NodeCache | None = None,
    ) -> None:
        self._config = config
        self._transport = FeishuTransport(config)
        self.wiki = FeishuWikiAPI(self._transport, config.feishu_wiki_space_id)
        self.docx = FeishuDocxAPI(self._transport)
        self.drive = FeishuDriveAPI(self._transport)
        self.bitable: FeishuBitableAPI | None = None
        if config.feishu_app_token and config.feishu_table_id:
            self.bitable = FeishuBitableAPI(self._transport, config.feishu_app_token, config.feishu_table_id)
        self.cache = cache if cache is not None else NodeCache()
        self._renderer = renderer or DiagramRenderer(
            config.renderer_command, config.renderer_args, config.renderer_timeout,
        )

    @property
    def root_token(self) -> str:
        return self._config.feishu_root_token

    async def preload(self) -> list[RemoteNode]:
        """Fetch and cache the nodes under the root before publishing."""
        return await self.cache.get_or_load(self.root_token, self.wiki.list_nodes)

    async def ensure_parent(self, name: str) -> RemoteNode:
        """Find the parent node titled *name* under the root, creating it if absent."""
        await self.cache.get_or_load(self.root_token, self.wiki.list_nodes)
        parent = self.cache.find_by_title(self.root_token, name)
        if parent is not None:
            log.info("Found existing parent node", extra={"extra_fields": {"title": name}})
            return parent
        log.info("Creating parent node", extra={"extra_fields": {"title": name}})
        parent = await self.wiki.create_node(self.root_token, name)
        self.cache.add(self.root_token, parent)
        return parent

    async def publish(self, markdown: str, name: str) -> DocumentResult:
        """Convert *markdown* and publish it as a new dated child of *name*.

        Errors propagate; the pipeline records them per document.
        """
        parent = await self.ensure_parent(name)

        child_title = f"{datetime.now(timezone.utc).date().isoformat()}_{name}"
        log.info("Creating content node", extra={"extra_fields": {"title": child_title}})
        child = await self.wiki.create_node(parent.node_token, child_title)

        warnings: list[ConversionWarning] = []
        blocks = classify(markdown, warnings=warnings)
        sink = FeishuBlockSink(self.docx, self.drive, self._renderer, self._config.feishu_batch_size)
        uploader = BlockUploader(sink, batch_delay=self._config.batch_delay, metrics=self._config.metrics)
        upload = await uploader.upload(child.obj_token, blocks)

        child_url = self._config.wiki_url(child.node_token)
        parent_url = self._config.wiki_url(parent.node_token)
        await self.docx.append_children(
            parent.obj_token, [feishu_blocks.link_paragraph(child_title, child_url)], index=0,
        )

        if self.bitable is not None:
            await self.update_index(self.bitable, name, child_url)

        log.info(
            "Document published",
            extra={"extra_fields": {"title": name, "url": child_url, "parent_url": parent_url}},
        )
        return DocumentResult(
            file=name,
            success=True,
            url=child_url,
            parent_url=parent_url,
            blocks_uploaded=upload.blocks_uploaded,
            warnings=warnings + upload.warnings,
        )

    async def update_index(self, bitable: FeishuBitableAPI, name: str, url: str) -> None:
        """Point the bitable record titled *name* at the new document."""
        records = await bitable.search_records("Title", name)
        if not records:
            log.warning("No bitable record for document", extra={"extra_fields": {"title": name}})
            return
        record = records[0]
        now_ms = int(time.time() * 1000)
        created = (record.get("fields") or {}).get("Content Created") or now_ms
        await bitable.update_record(record["record_id"], {
            "Content": {"text": "Click Here", "link": url},
            "Content Created": created,
            "Content Modified": now_ms,
        })
        log.info("Updated bitable record", extra={"extra_fields": {"title": name}})

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> FeishuPublisher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
