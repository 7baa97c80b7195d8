"""Figure directives embedded in Markdown.

A figure directive is a single-line tag::

    <figure title="Request flow" type="diagram">graph TD\\nA-->B</figure>
    <figure title="Results" type="table">| a | b |\\n| - | - |\\n| 1 | 2 |</figure>

``type`` is ``diagram`` (rendered to an image by the external renderer) or
``table`` (parsed by :mod:`mdbridge.converter.tables`).  The content keeps
its line breaks as literal ``\\n`` escapes so the directive stays on one
line; :func:`parse_figure` restores them.
"""

from __future__ import annotations

import re

from mdbridge.models import FigureDirective

FIGURE_RE = re.compile(
    r'^\s*<figure\s+title="(?P<title>[^"]*)"\s+type="(?P<type>diagram|table)"\s*>'
    r"(?P<content>.*)</figure>\s*$"
)


def restore_newlines(content: str) -> str:
    """Turn literal ``\\n`` escapes back into line breaks."""
    return content.replace("\\n", "\n")


def directive_from_match(match: re.Match[str]) -> FigureDirective:
    """Build a :class:`FigureDirective` from a :data:`FIGURE_RE` match."""
    return FigureDirective(
        title=match.group("title"),
        figure_type=match.group("type"),
        content=restore_newlines(match.group("content")),
    )


def parse_figure(line: str) -> FigureDirective | None:
    """Return the directive on *line*, or ``None`` if there is none."""
    match = FIGURE_RE.match(line)
    if match is None:
        return None
    return directive_from_match(match)
