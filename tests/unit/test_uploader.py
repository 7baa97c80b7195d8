"""Tests for the sequential block uploader."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest

from mdbridge.errors import MdBridgeRenderError, MdBridgeServerError
from mdbridge.models import Block, BlockKind, FigureDirective, TableGrid, TextSpan
from mdbridge.uploader import BlockSink, BlockUploader, batch_blocks


def para(text: str) -> Block:
    return Block(BlockKind.PARAGRAPH, spans=(TextSpan(text),))


def figure(title: str = "Flow") -> Block:
    return Block(BlockKind.FIGURE, figure=FigureDirective(title, "diagram", "graph TD"))


def table() -> Block:
    return Block(BlockKind.TABLE, table=TableGrid(rows=(("a",),)))


class RecordingSink:
    """In-memory sink that records every call with its offset."""

    platform = "test"

    def __init__(self, batch_size: int = 2, fail_figures: set[str] | None = None, fail_append: bool = False):
        self.batch_size = batch_size
        self.calls: list[tuple] = []
        self._fail_figures = fail_figures or set()
        self._fail_append = fail_append

    def render(self, block):
        return {"text": block.plain_text()}

    async def append(self, document_id, payloads, index):
        if self._fail_append:
            raise MdBridgeServerError("boom")
        self.calls.append(("append", index, [p["text"] for p in payloads]))

    async def place_figure(self, document_id, block, index):
        title = block.figure.title if block.figure else "table"
        if title in self._fail_figures:
            raise MdBridgeRenderError("mmdc missing", context={"command": "mmdc"})
        self.calls.append(("figure", index, title))
        return 1


class TestBatchBlocks:
    def test_concatenation(self):
        blocks = [para(str(i)) for i in range(7)]
        batches = batch_blocks(blocks, 3)
        assert [len(b) for b in batches] == [3, 3, 1]
        assert [b for batch in batches for b in batch] == blocks

    def test_empty(self):
        assert batch_blocks([], 50) == []


class TestBlockUploader:
    def test_recording_sink_satisfies_protocol(self):
        assert isinstance(RecordingSink(), BlockSink)

    async def test_batches_with_running_offset(self):
        sink = RecordingSink(batch_size=2)
        result = await BlockUploader(sink, batch_delay=0).upload("doc", [para(c) for c in "abcde"])

        assert sink.calls == [
            ("append", 0, ["a", "b"]),
            ("append", 2, ["c", "d"]),
            ("append", 4, ["e"]),
        ]
        assert result.blocks_uploaded == 5
        assert result.warnings == []

    async def test_figure_flushes_and_takes_offset(self):
        sink = RecordingSink(batch_size=10)
        blocks = [para("a"), para("b"), figure(), para("c"), table(), para("d")]
        result = await BlockUploader(sink, batch_delay=0).upload("doc", blocks)

        assert sink.calls == [
            ("append", 0, ["a", "b"]),
            ("figure", 2, "Flow"),
            ("append", 3, ["c"]),
            ("figure", 4, "table"),
            ("append", 5, ["d"]),
        ]
        assert result.blocks_uploaded == 6

    async def test_batch_delay_between_requests(self):
        sink = RecordingSink(batch_size=2)
        blocks = [para("a"), para("b"), para("c"), figure(), para("d")]

        with patch("mdbridge.uploader.asyncio.sleep", new=AsyncMock()) as sleep:
            await BlockUploader(sink, batch_delay=0.3).upload("doc", blocks)

        assert [c[0] for c in sink.calls] == ["append", "append", "figure", "append"]
        # A pause after every request except the last one.
        assert sleep.await_args_list == [call(0.3)] * 3

    async def test_single_batch_never_sleeps(self):
        with patch("mdbridge.uploader.asyncio.sleep", new=AsyncMock()) as sleep:
            await BlockUploader(RecordingSink(batch_size=5), batch_delay=0.3).upload(
                "doc", [para("a"), para("b")],
            )
        sleep.assert_not_awaited()

    async def test_consecutive_figures(self):
        sink = RecordingSink()
        await BlockUploader(sink, batch_delay=0).upload("doc", [figure("x"), figure("y")])
        assert sink.calls == [("figure", 0, "x"), ("figure", 1, "y")]

    async def test_render_error_skips_only_that_figure(self):
        sink = RecordingSink(batch_size=10)
        metrics = MagicMock()
        blocks = [para("a"), figure("bad"), figure("good"), para("b")]
        result = await BlockUploader(sink, batch_delay=0, metrics=metrics).upload("doc", blocks)

        assert sink.calls == [
            ("append", 0, ["a"]),
            ("figure", 1, "good"),
            ("append", 2, ["b"]),
        ]
        assert result.blocks_uploaded == 3
        assert [w.code for w in result.warnings] == ["FIGURE_SKIPPED"]
        assert result.warnings[0].context == {"title": "bad", "index": 1}
        metrics.increment.assert_any_call("mdbridge.figures_skipped_total", tags={"platform": "test"})

    async def test_request_failure_propagates(self):
        sink = RecordingSink(fail_append=True)
        with pytest.raises(MdBridgeServerError):
            await BlockUploader(sink, batch_delay=0).upload("doc", [para("a")])

    async def test_progress_callback(self):
        progress: list[tuple[int, int]] = []
        sink = RecordingSink(batch_size=2)
        await BlockUploader(sink, batch_delay=0, on_progress=lambda d, t: progress.append((d, t))).upload(
            "doc", [para("a"), para("b"), figure(), para("c")],
        )
        assert progress == [(2, 4), (3, 4), (4, 4)]

    async def test_empty_document(self):
        sink = RecordingSink()
        result = await BlockUploader(sink, batch_delay=0).upload("doc", [])
        assert sink.calls == []
        assert result.blocks_uploaded == 0

    async def test_blocks_uploaded_metric(self):
        metrics = MagicMock()
        await BlockUploader(RecordingSink(batch_size=2), batch_delay=0, metrics=metrics).upload(
            "doc", [para("a"), para("b"), para("c")],
        )
        metrics.increment.assert_any_call("mdbridge.blocks_uploaded_total", 2, tags={"platform": "test"})
        metrics.increment.assert_any_call("mdbridge.blocks_uploaded_total", 1, tags={"platform": "test"})
