"""Whole-document text passes that run before line classification.

Both passes operate on the complete Markdown text exactly once, before the
document is split into lines:

1. :func:`normalize_newlines` converts ``\\r\\n`` and lone ``\\r`` to ``\\n``.
2. :func:`collapse_block_equations` folds every multi-line ``$$ ... $$``
   region into one logical line so the classifier sees it as a single
   paragraph.
"""

from __future__ import annotations

import re

_BLOCK_EQUATION_RE = re.compile(r"\$\$(.+?)\$\$", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_newlines(text: str) -> str:
    """Convert Windows and old Mac line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _collapse(match: re.Match[str]) -> str:
    inner = match.group(1)
    if "\n" not in inner:
        return match.group(0)
    return "$$" + _WHITESPACE_RE.sub(" ", inner).strip() + "$$"


def collapse_block_equations(text: str) -> str:
    """Collapse multi-line ``$$`` regions into single-line equations.

    Internal newlines and runs of whitespace become single spaces and the
    formula is trimmed.  Single-line ``$$...$$`` regions are left untouched.

    >>> collapse_block_equations("$$\\n a +\\n  b\\n$$")
    '$$a + b$$'
    """
    return _BLOCK_EQUATION_RE.sub(_collapse, text)


def preprocess(text: str) -> str:
    """Run every whole-document pass in order."""
    return collapse_block_equations(normalize_newlines(text))
