"""Render converted Blocks as Feishu docx block payloads.

Docx blocks are dicts with a numeric ``block_type`` and a body keyed by the
type name::

    {"block_type": 4, "heading2": {"elements": [{"text_run": {"content": "Hi"}}]}}

Text elements:

* plain    -- ``{"text_run": {"content": "..."}}``
* bold     -- ``text_run.text_element_style.bold = true``
* italic   -- ``text_run.text_element_style.italic = true``
* link     -- ``text_run.text_element_style.link.url`` (percent-encoded)
* equation -- ``{"equation": {"content": "..."}}``

Tables are not appended through the children endpoint.  They are built by
:func:`build_table_descendants` into one *create descendant* payload so the
table, its cells and the cells' text blocks are created in one request.
"""

from __future__ import annotations

from typing import Any

from mdbridge.converter.inline import encode_url, parse_inline
from mdbridge.errors import MdBridgeConversionError
from mdbridge.models import Block, BlockKind, SpanStyle, TableGrid, TextSpan

BLOCK_TYPE_MAP: dict[str, int] = {
    "page": 1,
    "text": 2,
    "heading1": 3,
    "heading2": 4,
    "heading3": 5,
    "heading4": 6,
    "heading5": 7,
    "heading6": 8,
    "heading7": 9,
    "heading8": 10,
    "heading9": 11,
    "bullet": 12,
    "ordered": 13,
    "code": 14,
    "quote": 15,
    "todo": 17,
    "callout": 19,
    "divider": 22,
    "image": 27,
    "table": 31,
    "table_cell": 32,
}

_TEXT_KIND_NAMES: dict[BlockKind, str] = {
    BlockKind.HEADING_1: "heading1",
    BlockKind.HEADING_2: "heading2",
    BlockKind.HEADING_3: "heading3",
    BlockKind.HEADING_4: "heading4",
    BlockKind.HEADING_5: "heading5",
    BlockKind.HEADING_6: "heading6",
    BlockKind.BULLET_ITEM: "bullet",
    BlockKind.ORDERED_ITEM: "ordered",
    BlockKind.PARAGRAPH: "text",
}


def text_element(span: TextSpan) -> dict[str, Any]:
    """Convert one span to a docx text element."""
    if span.style == SpanStyle.EQUATION:
        return {"equation": {"content": span.content}}

    run: dict[str, Any] = {"content": span.content}
    if span.style == SpanStyle.BOLD:
        run["text_element_style"] = {"bold": True}
    elif span.style == SpanStyle.ITALIC:
        run["text_element_style"] = {"italic": True}
    elif span.style == SpanStyle.LINK and span.url:
        run["text_element_style"] = {"link": {"url": span.url}}
    return {"text_run": run}


def text_elements(spans: tuple[TextSpan, ...] | list[TextSpan]) -> list[dict[str, Any]]:
    """Convert spans to elements; an empty span list gives one empty run."""
    if not spans:
        return [{"text_run": {"content": ""}}]
    return [text_element(span) for span in spans]


def _text_block(name: str, spans: tuple[TextSpan, ...] | list[TextSpan]) -> dict[str, Any]:
    return {"block_type": BLOCK_TYPE_MAP[name], name: {"elements": text_elements(spans)}}


def render_block(block: Block) -> dict[str, Any]:
    """Render a batchable block as a docx children payload entry.

    Raises
    ------
    MdBridgeConversionError
        For kinds that cannot travel in an append batch (tables, figures)
        or that the wiki target does not support (table of contents).
    """
    name = _TEXT_KIND_NAMES.get(block.kind)
    if name is not None:
        return _text_block(name, block.spans)
    if block.kind == BlockKind.DIVIDER:
        return {"block_type": BLOCK_TYPE_MAP["divider"], "divider": {}}
    raise MdBridgeConversionError(
        message=f"Block kind {block.kind.value!r} cannot be rendered as a docx child block.",
        context={"kind": block.kind.value},
    )


def image_placeholder() -> dict[str, Any]:
    """Empty image block later bound to an uploaded media token."""
    return {"block_type": BLOCK_TYPE_MAP["image"], "image": {}}


def link_paragraph(title: str, url: str) -> dict[str, Any]:
    """Text block holding one link, used to index child documents."""
    return _text_block("text", [TextSpan(title, SpanStyle.LINK, url=encode_url(url))])


def build_table_descendants(
    grid: TableGrid,
    index: int,
    *,
    prefix: str = "tbl",
) -> dict[str, Any]:
    """Build the single-request payload that creates a whole table.

    The payload holds one table block (31) owning ``height x width`` cell
    blocks (32), each owning exactly one text block (2) with the cell's
    inline spans.  Short rows are padded with empty cells.  Block ids are
    temporary ids scoped to the request.

    Parameters
    ----------
    grid:
        The parsed table.
    index:
        Insertion position among the document's top-level children.
    prefix:
        Prefix for the temporary block ids.

    Returns
    -------
    dict
        Request body for ``POST .../blocks/{block_id}/descendant``.
    """
    table_id = f"{prefix}_table"
    cell_ids: list[str] = []
    descendants: list[dict[str, Any]] = []

    for r, row in enumerate(grid.padded_rows()):
        for c, cell in enumerate(row):
            cell_id = f"{prefix}_cell_{r}_{c}"
            text_id = f"{prefix}_text_{r}_{c}"
            cell_ids.append(cell_id)
            descendants.append({
                "block_id": cell_id,
                "block_type": BLOCK_TYPE_MAP["table_cell"],
                "table_cell": {},
                "children": [text_id],
            })
            descendants.append({
                "block_id": text_id,
                "block_type": BLOCK_TYPE_MAP["text"],
                "text": {"elements": text_elements(parse_inline(cell))},
                "children": [],
            })

    table = {
        "block_id": table_id,
        "block_type": BLOCK_TYPE_MAP["table"],
        "table": {
            "property": {
                "row_size": grid.height,
                "column_size": grid.width,
            },
        },
        "children": cell_ids,
    }
    return {
        "children_id": [table_id],
        "index": index,
        "descendants": [table, *descendants],
    }
