"""Batch a sequence into contiguous groups of at most *size* items.

Both platforms cap the number of children accepted by one append request
(50 for the wiki docx endpoint, 100 for Notion).  The same helper splits
long paragraph span lists for the notes platform.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def chunk_children(items: Sequence[T], size: int = 100) -> list[list[T]]:
    """Split *items* into order-preserving batches of at most ``size``.

    Parameters
    ----------
    items:
        The full sequence to partition.
    size:
        Maximum number of items per batch.

    Returns
    -------
    list[list]
        Consecutive sublists whose concatenation equals *items*.
        An empty input returns an empty list (not ``[[]]``).

    Raises
    ------
    ValueError
        If *size* is less than 1.

    Examples
    --------
    >>> [len(b) for b in chunk_children(list(range(120)), size=50)]
    [50, 50, 20]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    if not items:
        return []

    return [list(items[i : i + size]) for i in range(0, len(items), size)]
