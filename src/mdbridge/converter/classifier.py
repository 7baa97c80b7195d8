"""Block classifier: Markdown document text to an ordered list of Blocks.

Dispatch is an ordered list of :class:`Rule` objects.  Each line is tested
against the rules in sequence and the first match produces the block:

1. figure directive (``<figure title=".." type="diagram|table">``)
2. heading ``#`` .. ``######`` followed by whitespace
3. bullet item (``-`` or ``*`` followed by whitespace)
4. ordered item (digits, ``.``, whitespace)
5. divider (three or more ``-``, ``*`` or ``_`` alone on the line)
6. any other non-blank line is a paragraph

Blank lines produce nothing.  The whole-document preprocessing passes in
:mod:`mdbridge.converter.preprocess` run once before the text is split.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from mdbridge.converter.figures import FIGURE_RE, directive_from_match
from mdbridge.converter.inline import parse_inline
from mdbridge.converter.preprocess import preprocess
from mdbridge.converter.tables import table_grid
from mdbridge.models import Block, BlockKind, ConversionWarning

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_BULLET_RE = re.compile(r"^[-*]\s+(.+)$")
_ORDERED_RE = re.compile(r"^\d+\.\s+(.+)$")
_DIVIDER_RE = re.compile(r"^[-*_]{3,}$")
_PARAGRAPH_RE = re.compile(r"^(?=.*\S)(.*)$")


@dataclass(frozen=True)
class Rule:
    """One ``(predicate, handler)`` pair of the dispatch table."""

    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], Block | None]

    def apply(self, line: str) -> tuple[bool, Block | None]:
        """Return ``(matched, block)``; a matching rule may still emit nothing."""
        m = self.pattern.match(line)
        if m is None:
            return False, None
        return True, self.build(m)


def _figure(m: re.Match[str]) -> Block | None:
    directive = directive_from_match(m)
    if directive.figure_type == "table":
        grid = table_grid(directive.content)
        if grid.height == 0:
            return None
        return Block(BlockKind.TABLE, table=grid, figure=directive)
    return Block(BlockKind.FIGURE, figure=directive)


def _heading(m: re.Match[str]) -> Block:
    level = len(m.group(1))
    return Block(BlockKind.heading(level), spans=tuple(parse_inline(m.group(2).strip())))


def _bullet(m: re.Match[str]) -> Block:
    return Block(BlockKind.BULLET_ITEM, spans=tuple(parse_inline(m.group(1))))


def _ordered(m: re.Match[str]) -> Block:
    return Block(BlockKind.ORDERED_ITEM, spans=tuple(parse_inline(m.group(1))))


def _divider(m: re.Match[str]) -> Block:
    return Block(BlockKind.DIVIDER)


def _paragraph(m: re.Match[str]) -> Block:
    return Block(BlockKind.PARAGRAPH, spans=tuple(parse_inline(m.group(1))))


RULES: tuple[Rule, ...] = (
    Rule("figure", FIGURE_RE, _figure),
    Rule("heading", _HEADING_RE, _heading),
    Rule("bullet", _BULLET_RE, _bullet),
    Rule("ordered", _ORDERED_RE, _ordered),
    Rule("divider", _DIVIDER_RE, _divider),
    Rule("paragraph", _PARAGRAPH_RE, _paragraph),
)


def classify_line(line: str) -> Block | None:
    """Classify a single line; ``None`` for blank lines and empty tables."""
    for rule in RULES:
        matched, block = rule.apply(line)
        if matched:
            return block
    return None


def classify(
    markdown: str,
    *,
    warnings: list[ConversionWarning] | None = None,
) -> list[Block]:
    """Convert a whole Markdown document into blocks in source order.

    Parameters
    ----------
    markdown:
        Raw document text.
    warnings:
        Optional mutable list that receives a ``EMPTY_TABLE`` warning for
        every table directive without any rows.

    Returns
    -------
    list[Block]

    Examples
    --------
    >>> [b.kind.value for b in classify("# Title\\n\\n- item\\n---")]
    ['heading_1', 'bullet_item', 'divider']
    """
    blocks: list[Block] = []
    for lineno, line in enumerate(preprocess(markdown).split("\n"), start=1):
        if not line.strip():
            continue
        block = classify_line(line)
        if block is None:
            if warnings is not None:
                warnings.append(ConversionWarning(
                    code="EMPTY_TABLE",
                    message="Table directive has no rows and was dropped.",
                    context={"line": lineno},
                ))
            continue
        blocks.append(block)
    return blocks
