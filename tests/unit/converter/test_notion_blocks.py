"""Tests for Notion payload rendering and post-processing passes."""

from __future__ import annotations

import pytest

from mdbridge.converter.notion_blocks import (
    build_image,
    build_rich_text,
    build_table,
    render_block,
    split_long_paragraphs,
    with_table_of_contents,
)
from mdbridge.errors import MdBridgeConversionError
from mdbridge.models import Block, BlockKind, FigureDirective, SpanStyle, TableGrid, TextSpan


class TestBuildRichText:
    def test_plain_has_no_annotations(self):
        assert build_rich_text([TextSpan("hi")]) == [{"type": "text", "text": {"content": "hi"}}]

    def test_bold_and_italic(self):
        bold, italic = build_rich_text([TextSpan("b", SpanStyle.BOLD), TextSpan("i", SpanStyle.ITALIC)])
        assert bold["annotations"]["bold"] is True
        assert bold["annotations"]["italic"] is False
        assert italic["annotations"]["italic"] is True

    def test_link_is_decoded(self):
        [seg] = build_rich_text([TextSpan("x", SpanStyle.LINK, url="https%3A%2F%2Fa.io%2Fb%20c")])
        assert seg["text"]["link"] == {"url": "https://a.io/b c"}

    def test_equation(self):
        assert build_rich_text([TextSpan("x", SpanStyle.EQUATION)]) == [
            {"type": "equation", "equation": {"expression": "x"}},
        ]

    def test_long_text_split(self):
        segs = build_rich_text([TextSpan("a" * 4500, SpanStyle.BOLD)])
        assert [len(s["text"]["content"]) for s in segs] == [2000, 2000, 500]
        assert all(s["annotations"]["bold"] for s in segs)

    def test_forced_bold(self):
        [seg] = build_rich_text([TextSpan("x")], bold=True)
        assert seg["annotations"]["bold"] is True


class TestRenderBlock:
    @pytest.mark.parametrize("level", [1, 2, 3])
    def test_native_headings(self, level):
        payload = render_block(Block(BlockKind.heading(level), spans=(TextSpan("T"),)))
        assert payload["type"] == f"heading_{level}"

    @pytest.mark.parametrize("level", [4, 5, 6])
    def test_deep_headings_downgraded(self, level):
        payload = render_block(Block(BlockKind.heading(level), spans=(TextSpan("T"),)))
        assert payload["type"] == "heading_3"

    def test_deep_headings_as_bold_paragraph(self):
        payload = render_block(
            Block(BlockKind.HEADING_5, spans=(TextSpan("T"),)), heading_overflow="paragraph",
        )
        assert payload["type"] == "paragraph"
        assert payload["paragraph"]["rich_text"][0]["annotations"]["bold"] is True

    def test_lists(self):
        assert render_block(Block(BlockKind.BULLET_ITEM))["type"] == "bulleted_list_item"
        assert render_block(Block(BlockKind.ORDERED_ITEM))["type"] == "numbered_list_item"

    def test_display_equation_paragraph(self):
        block = Block(BlockKind.PARAGRAPH, spans=(TextSpan("a+b", SpanStyle.EQUATION, display=True),))
        assert render_block(block) == {
            "object": "block", "type": "equation", "equation": {"expression": "a+b"},
        }

    def test_inline_equation_stays_paragraph(self):
        block = Block(BlockKind.PARAGRAPH, spans=(TextSpan("a", SpanStyle.EQUATION),))
        assert render_block(block)["type"] == "paragraph"

    def test_divider_and_toc(self):
        assert render_block(Block(BlockKind.DIVIDER))["type"] == "divider"
        assert render_block(Block(BlockKind.TABLE_OF_CONTENTS))["type"] == "table_of_contents"

    def test_figure_raises(self):
        with pytest.raises(MdBridgeConversionError):
            render_block(Block(BlockKind.FIGURE, figure=FigureDirective("t", "diagram", "x")))


class TestTableAndImage:
    def test_table(self):
        payload = build_table(TableGrid(rows=(("h1", "h2"), ("v",))))
        body = payload["table"]
        assert body["table_width"] == 2
        assert body["has_column_header"] is True
        assert len(body["children"]) == 2
        assert body["children"][1]["table_row"]["cells"] == [
            [{"type": "text", "text": {"content": "v"}}],
            [],
        ]

    def test_image_with_caption(self):
        payload = build_image("upl-1", caption="Flow")
        assert payload["image"]["file_upload"] == {"id": "upl-1"}
        assert payload["image"]["caption"][0]["text"]["content"] == "Flow"

    def test_image_without_caption(self):
        assert "caption" not in build_image("upl-1")["image"]


class TestPasses:
    def test_split_long_paragraphs(self):
        spans = tuple(TextSpan(str(i)) for i in range(250))
        out = split_long_paragraphs([Block(BlockKind.PARAGRAPH, spans=spans)], limit=100)
        assert [len(b.spans) for b in out] == [100, 100, 50]
        assert tuple(s for b in out for s in b.spans) == spans

    def test_short_paragraph_unchanged(self):
        block = Block(BlockKind.PARAGRAPH, spans=(TextSpan("a"),))
        assert split_long_paragraphs([block]) == [block]

    def test_over_long_span_counts_as_several(self):
        block = Block(BlockKind.PARAGRAPH, spans=(TextSpan("x" * 5000),))
        out = split_long_paragraphs([block], limit=2)
        assert [len(b.spans) for b in out] == [2, 1]

    def test_other_blocks_untouched(self):
        block = Block(BlockKind.BULLET_ITEM, spans=tuple(TextSpan("a") for _ in range(200)))
        assert split_long_paragraphs([block], limit=10) == [block]

    def test_table_of_contents_preamble(self):
        body = [Block(BlockKind.PARAGRAPH)]
        out = with_table_of_contents(body)
        assert [b.kind for b in out] == [
            BlockKind.DIVIDER, BlockKind.TABLE_OF_CONTENTS, BlockKind.DIVIDER, BlockKind.PARAGRAPH,
        ]
