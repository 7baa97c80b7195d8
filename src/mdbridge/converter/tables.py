"""Table parser: pipe-delimited Markdown table text to a cell grid.

Input::

    | a | b |
    | - | - |
    | 1 | 2 |

Output::

    [["a", "b"], ["1", "2"]]

Only the second row is ever tested for being an alignment separator.  A
table without a separator keeps its second row as data.  Rows of unequal
length are kept as they are; :func:`grid_width` is the longest row and
:func:`pad_grid` fills short rows with empty cells on the right.
"""

from __future__ import annotations

import re

from mdbridge.models import TableGrid

_SEPARATOR_CELL_RE = re.compile(r"^[:\-]*-[:\-]*$")


def split_row(line: str) -> list[str]:
    """Split one table row into trimmed cells, ignoring outer pipes."""
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|"):
        row = row[:-1]
    return [cell.strip() for cell in row.split("|")]


def is_separator_row(cells: list[str]) -> bool:
    """True if every cell is made of dashes and colons (at least one dash)."""
    return bool(cells) and all(_SEPARATOR_CELL_RE.match(cell) for cell in cells)


def parse_table(raw: str) -> list[list[str]]:
    """Parse a raw table substring into a row-major grid.

    Blank lines are ignored.  Never raises for ragged input.

    >>> parse_table("| a | b |\\n| - | - |\\n| 1 | 2 |")
    [['a', 'b'], ['1', '2']]
    """
    rows = [split_row(line) for line in raw.split("\n") if line.strip()]
    if len(rows) > 1 and is_separator_row(rows[1]):
        del rows[1]
    return rows


def grid_width(grid: list[list[str]]) -> int:
    return max((len(row) for row in grid), default=0)


def pad_grid(grid: list[list[str]]) -> list[list[str]]:
    """Right-pad every row with ``""`` up to :func:`grid_width`."""
    width = grid_width(grid)
    return [row + [""] * (width - len(row)) for row in grid]


def table_grid(raw: str) -> TableGrid:
    """Parse *raw* straight into an immutable :class:`TableGrid`."""
    return TableGrid(rows=tuple(tuple(row) for row in parse_table(raw)))
