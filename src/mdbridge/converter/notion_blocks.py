"""Render converted Blocks as Notion API block payloads.

Besides the per-block rendering this module holds the post-processing
passes that only the notes platform needs:

* :func:`split_long_paragraphs` -- Notion accepts at most 100 rich-text
  segments per block, so longer paragraphs become several paragraphs.
* :func:`with_table_of_contents` -- prefix the page with divider, table of
  contents and divider.

Rich-text segments follow the Notion API input shape::

    {"type": "text", "text": {"content": "docs", "link": {"url": "https://..."}},
     "annotations": {"bold": true, ...}}
    {"type": "equation", "equation": {"expression": "E=mc^2"}}
"""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote

from mdbridge.converter.inline import parse_inline
from mdbridge.errors import MdBridgeConversionError
from mdbridge.models import Block, BlockKind, SpanStyle, TableGrid, TextSpan
from mdbridge.utils.chunk import chunk_children
from mdbridge.utils.text_split import split_string

TEXT_CHAR_LIMIT: int = 2000

_LIST_TYPES: dict[BlockKind, str] = {
    BlockKind.BULLET_ITEM: "bulleted_list_item",
    BlockKind.ORDERED_ITEM: "numbered_list_item",
}


# ---------------------------------------------------------------------------
# Rich text
# ---------------------------------------------------------------------------

def _default_annotations() -> dict:
    return {
        "bold": False,
        "italic": False,
        "strikethrough": False,
        "underline": False,
        "code": False,
        "color": "default",
    }


def _text_segment(content: str, span: TextSpan, *, bold: bool = False) -> dict:
    text: dict[str, Any] = {"content": content}
    if span.style == SpanStyle.LINK and span.url:
        text["link"] = {"url": unquote(span.url)}
    seg: dict[str, Any] = {"type": "text", "text": text}
    if bold or span.style in (SpanStyle.BOLD, SpanStyle.ITALIC):
        annotations = _default_annotations()
        annotations["bold"] = bold or span.style == SpanStyle.BOLD
        annotations["italic"] = span.style == SpanStyle.ITALIC
        seg["annotations"] = annotations
    return seg


def build_rich_text(spans: tuple[TextSpan, ...] | list[TextSpan], *, bold: bool = False) -> list[dict]:
    """Convert spans to a Notion ``rich_text`` array.

    Text segments longer than 2000 characters are split, keeping their
    annotations and link.  *bold* forces bold on every text segment.
    """
    segments: list[dict] = []
    for span in spans:
        if span.style == SpanStyle.EQUATION:
            segments.append({"type": "equation", "equation": {"expression": span.content}})
            continue
        for chunk in split_string(span.content, TEXT_CHAR_LIMIT):
            segments.append(_text_segment(chunk, span, bold=bold))
    return segments


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

def _block(block_type: str, body: dict[str, Any]) -> dict[str, Any]:
    return {"object": "block", "type": block_type, block_type: body}


def _heading(block: Block, heading_overflow: str) -> dict[str, Any]:
    level = block.heading_level or 1
    if level <= 3:
        heading_type = f"heading_{level}"
    elif heading_overflow == "downgrade":
        heading_type = "heading_3"
    else:
        return _block("paragraph", {
            "rich_text": build_rich_text(block.spans, bold=True),
            "color": "default",
        })
    return _block(heading_type, {
        "rich_text": build_rich_text(block.spans),
        "color": "default",
        "is_toggleable": False,
    })


def _paragraph(block: Block) -> dict[str, Any]:
    spans = block.spans
    # A paragraph that is only a display equation becomes an equation block.
    if len(spans) == 1 and spans[0].style == SpanStyle.EQUATION and spans[0].display:
        return _block("equation", {"expression": spans[0].content})
    return _block("paragraph", {"rich_text": build_rich_text(spans), "color": "default"})


def build_table(grid: TableGrid) -> dict[str, Any]:
    """Native Notion table with the first row as column header."""
    rows = [
        {
            "object": "block",
            "type": "table_row",
            "table_row": {"cells": [build_rich_text(parse_inline(cell)) for cell in row]},
        }
        for row in grid.padded_rows()
    ]
    return _block("table", {
        "table_width": grid.width,
        "has_column_header": True,
        "has_row_header": False,
        "children": rows,
    })


def build_image(file_upload_id: str, caption: str = "") -> dict[str, Any]:
    """Image block bound to a completed file upload."""
    body: dict[str, Any] = {
        "type": "file_upload",
        "file_upload": {"id": file_upload_id},
    }
    if caption:
        body["caption"] = [{"type": "text", "text": {"content": caption}}]
    return _block("image", body)


def render_block(block: Block, *, heading_overflow: str = "downgrade") -> dict[str, Any]:
    """Render a batchable block as a Notion children payload entry.

    Parameters
    ----------
    block:
        Any block except figures.
    heading_overflow:
        ``"downgrade"`` clamps heading levels 4-6 to ``heading_3``;
        ``"paragraph"`` renders them as bold paragraphs.

    Raises
    ------
    MdBridgeConversionError
        For figure blocks, which need rendering and upload first.
    """
    if block.heading_level is not None:
        return _heading(block, heading_overflow)
    if block.kind in _LIST_TYPES:
        list_type = _LIST_TYPES[block.kind]
        return _block(list_type, {"rich_text": build_rich_text(block.spans), "color": "default"})
    if block.kind == BlockKind.PARAGRAPH:
        return _paragraph(block)
    if block.kind == BlockKind.DIVIDER:
        return _block("divider", {})
    if block.kind == BlockKind.TABLE_OF_CONTENTS:
        return _block("table_of_contents", {"color": "default"})
    if block.kind == BlockKind.TABLE and block.table is not None:
        return build_table(block.table)
    raise MdBridgeConversionError(
        message=f"Block kind {block.kind.value!r} cannot be rendered as a Notion block.",
        context={"kind": block.kind.value},
    )


# ---------------------------------------------------------------------------
# Post-processing passes
# ---------------------------------------------------------------------------

def _expand_spans(spans: tuple[TextSpan, ...]) -> list[TextSpan]:
    """Split over-long text spans so one span renders to one segment."""
    expanded: list[TextSpan] = []
    for span in spans:
        if span.style == SpanStyle.EQUATION or len(span.content) <= TEXT_CHAR_LIMIT:
            expanded.append(span)
            continue
        for chunk in split_string(span.content, TEXT_CHAR_LIMIT):
            expanded.append(TextSpan(chunk, span.style, url=span.url, display=span.display))
    return expanded


def split_long_paragraphs(blocks: list[Block], limit: int = 100) -> list[Block]:
    """Split paragraphs with more than *limit* spans into consecutive paragraphs.

    Spans keep their order; every resulting paragraph holds a contiguous
    run of at most *limit* spans.  Other blocks pass through unchanged.
    """
    result: list[Block] = []
    for block in blocks:
        if block.kind != BlockKind.PARAGRAPH:
            result.append(block)
            continue
        spans = _expand_spans(block.spans)
        if len(spans) <= limit:
            result.append(block)
            continue
        for chunk in chunk_children(spans, limit):
            result.append(Block(BlockKind.PARAGRAPH, spans=tuple(chunk)))
    return result


def with_table_of_contents(blocks: list[Block]) -> list[Block]:
    """Prefix *blocks* with divider, table of contents, divider."""
    return [
        Block(BlockKind.DIVIDER),
        Block(BlockKind.TABLE_OF_CONTENTS),
        Block(BlockKind.DIVIDER),
        *blocks,
    ]
