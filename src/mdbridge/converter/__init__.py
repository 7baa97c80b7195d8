"""Markdown to block-tree conversion.

Public API:

- :func:`classify` -- Markdown document -> ordered :class:`~mdbridge.models.Block` list.
- :func:`parse_inline` -- one line -> :class:`~mdbridge.models.TextSpan` list.
- :func:`parse_table` -- pipe table text -> row-major cell grid.
- :func:`parse_figure` -- ``<figure>`` directive line -> directive or ``None``.
- :mod:`~mdbridge.converter.feishu_blocks` / :mod:`~mdbridge.converter.notion_blocks`
  -- platform payload renderers.
"""

from mdbridge.converter.classifier import classify, classify_line
from mdbridge.converter.figures import parse_figure
from mdbridge.converter.inline import encode_url, parse_inline
from mdbridge.converter.preprocess import collapse_block_equations, normalize_newlines
from mdbridge.converter.references import extract_reference_urls, link_citations
from mdbridge.converter.tables import grid_width, pad_grid, parse_table

__all__ = [
    "classify",
    "classify_line",
    "collapse_block_equations",
    "encode_url",
    "extract_reference_urls",
    "grid_width",
    "link_citations",
    "normalize_newlines",
    "pad_grid",
    "parse_figure",
    "parse_inline",
    "parse_table",
]
