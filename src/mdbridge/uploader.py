"""Sequential block uploader shared by both platforms.

:class:`BlockUploader` drives an ordered block list into one remote
document through a platform :class:`BlockSink`:

* Ordinary blocks are rendered and sent in fixed-size batches (50 for the
  wiki, 100 for Notion).  Each batch is inserted at ``index = offset``,
  where *offset* counts the top-level blocks already committed, so batches
  are strictly sequential.
* Tables and figures interrupt batching: the pending blocks are flushed
  first, then the sink places the table or figure at the current offset
  through its own multi-step sequence.
* A fixed ``batch_delay`` pause separates consecutive requests.
* A failed request is not retried; it propagates and aborts the document.
  Only :class:`~mdbridge.errors.MdBridgeRenderError` is contained: the
  figure is skipped with a ``FIGURE_SKIPPED`` warning.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from mdbridge.errors import MdBridgeRenderError
from mdbridge.models import Block, ConversionWarning
from mdbridge.observability import NoopMetricsHook, get_logger
from mdbridge.utils.chunk import chunk_children

log = get_logger("mdbridge.uploader")

ProgressCallback = Callable[[int, int], None]


def batch_blocks(blocks: list[Block], size: int) -> list[list[Block]]:
    """Partition *blocks* into contiguous batches of at most *size*.

    Concatenating the batches in order gives back *blocks*.
    """
    return chunk_children(blocks, size)


@runtime_checkable
class BlockSink(Protocol):
    """Platform side of an upload."""

    platform: str
    batch_size: int

    def render(self, block: Block) -> dict[str, Any]:
        """Render a batchable block into the platform's payload."""
        ...

    async def append(self, document_id: str, payloads: list[dict[str, Any]], index: int) -> None:
        """Insert *payloads* as top-level children starting at *index*."""
        ...

    async def place_figure(self, document_id: str, block: Block, index: int) -> int:
        """Create a table or figure at *index*; return top-level blocks created."""
        ...


@dataclass
class UploadResult:
    """Outcome of uploading one document's blocks."""

    blocks_uploaded: int = 0
    warnings: list[ConversionWarning] = field(default_factory=list)


class BlockUploader:
    """Upload blocks to one document in order.

    Parameters
    ----------
    sink:
        Platform implementation of :class:`BlockSink`.
    batch_delay:
        Seconds to pause between consecutive requests.
    metrics:
        Optional :class:`~mdbridge.observability.MetricsHook`.
    on_progress:
        Called as ``on_progress(done, total)`` after every batch or figure,
        counting source blocks.
    """

    def __init__(
        self,
        sink: BlockSink,
        *,
        batch_delay: float = 0.2,
        metrics: Any | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._sink = sink
        self._batch_delay = batch_delay
        self._metrics = metrics if metrics is not None else NoopMetricsHook()
        self._on_progress = on_progress

    async def upload(self, document_id: str, blocks: list[Block]) -> UploadResult:
        """Upload *blocks* into *document_id*.

        Returns
        -------
        UploadResult
            The number of top-level blocks committed and any skipped-figure
            warnings.
        """
        result = UploadResult()
        total = len(blocks)
        done = 0
        pending: list[Block] = []

        async def flush() -> None:
            nonlocal done
            for batch in batch_blocks(pending, self._sink.batch_size):
                payloads = [self._sink.render(block) for block in batch]
                await self._sink.append(document_id, payloads, result.blocks_uploaded)
                result.blocks_uploaded += len(batch)
                done += len(batch)
                self._metrics.increment(
                    "mdbridge.blocks_uploaded_total",
                    len(batch),
                    tags={"platform": self._sink.platform},
                )
                self._report(document_id, done, total)
                if done < total:
                    await asyncio.sleep(self._batch_delay)
            pending.clear()

        for block in blocks:
            if not block.interrupts_batch:
                pending.append(block)
                continue

            await flush()
            try:
                created = await self._sink.place_figure(document_id, block, result.blocks_uploaded)
            except MdBridgeRenderError as exc:
                title = block.figure.title if block.figure is not None else ""
                log.warning(
                    "Figure skipped",
                    extra={"extra_fields": {
                        "document_id": document_id,
                        "title": title,
                        "error": exc.message,
                        **exc.context,
                    }},
                )
                self._metrics.increment(
                    "mdbridge.figures_skipped_total",
                    tags={"platform": self._sink.platform},
                )
                result.warnings.append(ConversionWarning(
                    code="FIGURE_SKIPPED",
                    message=f"Figure {title!r} was skipped: {exc.message}",
                    context={"title": title, "index": result.blocks_uploaded},
                ))
                created = 0
            result.blocks_uploaded += created
            done += 1
            self._report(document_id, done, total)
            if done < total:
                await asyncio.sleep(self._batch_delay)

        await flush()
        return result

    def _report(self, document_id: str, done: int, total: int) -> None:
        percent = round(done / total * 100) if total else 100
        log.info(
            "Uploading blocks",
            extra={"extra_fields": {
                "document_id": document_id,
                "percent": percent,
                "done": done,
                "total": total,
            }},
        )
        if self._on_progress is not None:
            self._on_progress(done, total)
