"""Publish Markdown documents as Notion pages.

Each source file becomes one child page of the configured parent page.
Before upload the block list goes through the notes-platform passes:
citation linking, paragraph span splitting and the table-of-contents
preamble.
"""

from __future__ import annotations

from typing import Any

from mdbridge.api.notion import BlockAPI, FileAPI, PageAPI
from mdbridge.api.transport import NotionTransport
from mdbridge.config import MdBridgeConfig
from mdbridge.converter import notion_blocks
from mdbridge.converter.classifier import classify
from mdbridge.converter.preprocess import normalize_newlines
from mdbridge.converter.references import extract_reference_urls, link_citations
from mdbridge.errors import MdBridgeConversionError
from mdbridge.models import Block, BlockKind, ConversionWarning, DocumentResult
from mdbridge.observability import get_logger
from mdbridge.publishers.feishu import image_filename
from mdbridge.render import DiagramRenderer
from mdbridge.uploader import BlockUploader

log = get_logger("mdbridge.publishers.notion")


class NotionBlockSink:
    """:class:`~mdbridge.uploader.BlockSink` for Notion pages.

    Notion only appends at the end of a page, which is exactly the running
    offset because batches are sequential; *index* is therefore unused.
    """

    platform = "notion"

    def __init__(
        self,
        blocks: BlockAPI,
        files: FileAPI,
        renderer: DiagramRenderer,
        *,
        batch_size: int = 100,
        heading_overflow: str = "downgrade",
    ) -> None:
        self._blocks = blocks
        self._files = files
        self._renderer = renderer
        self.batch_size = batch_size
        self._heading_overflow = heading_overflow

    def render(self, block: Block) -> dict[str, Any]:
        return notion_blocks.render_block(block, heading_overflow=self._heading_overflow)

    async def append(self, document_id: str, payloads: list[dict[str, Any]], index: int) -> None:
        await self._blocks.append_children(document_id, payloads)

    async def place_figure(self, document_id: str, block: Block, index: int) -> int:
        if block.kind == BlockKind.TABLE and block.table is not None:
            await self._blocks.append_children(document_id, [notion_blocks.build_table(block.table)])
            return 1
        if block.kind == BlockKind.FIGURE and block.figure is not None:
            png = await self._renderer.render(block.figure.content)
            upload_id = await self._files.upload(image_filename(block.figure.title), png)
            image = notion_blocks.build_image(upload_id, caption=block.figure.title)
            await self._blocks.append_children(document_id, [image])
            return 1
        raise MdBridgeConversionError(
            message=f"Block kind {block.kind.value!r} is not a figure.",
            context={"kind": block.kind.value},
        )


def prepare_blocks(markdown: str, config: MdBridgeConfig, warnings: list[ConversionWarning] | None = None) -> list[Block]:
    """Classify *markdown* and apply the Notion post-processing passes."""
    blocks = classify(markdown, warnings=warnings)
    if config.link_citations:
        blocks = link_citations(blocks, extract_reference_urls(normalize_newlines(markdown)))
    blocks = notion_blocks.split_long_paragraphs(blocks, config.paragraph_span_limit)
    if config.table_of_contents:
        blocks = notion_blocks.with_table_of_contents(blocks)
    return blocks


class NotionPublisher:
    """Async client that publishes documents under one parent page.

    Parameters
    ----------
    config:
        Run configuration; the Notion token and parent page must be set.
    renderer:
        Diagram renderer; built from the config when omitted.
    """

    def __init__(self, config: MdBridgeConfig, *, renderer: DiagramRenderer | None = None) -> None:
        self._config = config
        self._transport = NotionTransport(config)
        self.pages = PageAPI(self._transport)
        self.blocks = BlockAPI(self._transport)
        self.files = FileAPI(self._transport)
        self._renderer = renderer or DiagramRenderer(
            config.renderer_command, config.renderer_args, config.renderer_timeout,
        )

    async def publish(self, markdown: str, name: str) -> DocumentResult:
        """Create a page titled *name* holding the converted *markdown*."""
        warnings: list[ConversionWarning] = []
        blocks = prepare_blocks(markdown, self._config, warnings)

        page = await self.pages.create(self._config.notion_parent_page_id, name)
        page_id = page["id"]
        sink = NotionBlockSink(
            self.blocks,
            self.files,
            self._renderer,
            batch_size=self._config.notion_batch_size,
            heading_overflow=self._config.heading_overflow,
        )
        uploader = BlockUploader(sink, batch_delay=self._config.batch_delay, metrics=self._config.metrics)
        upload = await uploader.upload(page_id, blocks)

        url = page.get("url", "")
        log.info("Notion page created", extra={"extra_fields": {"title": name, "url": url}})
        return DocumentResult(
            file=name,
            success=True,
            url=url,
            blocks_uploaded=upload.blocks_uploaded,
            warnings=warnings + upload.warnings,
        )

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> NotionPublisher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
