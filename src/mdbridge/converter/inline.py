"""Inline formatter: one line of Markdown to an ordered list of TextSpans.

The scanner walks the line left to right.  At each position the markers are
tried in a fixed order and the first match wins:

========================  ==========================  ==================
Marker                    Pattern                     Span
========================  ==========================  ==================
block equation            ``$$formula$$``             equation, display
inline equation           ``$formula$``               equation
bold                      ``**text**``                bold
italic                    ``*text*``                  italic
link                      ``[label](url)``            link
========================  ==========================  ==================

Characters that do not start a marker accumulate in a plain-text buffer
that is flushed whenever a marker matches and at the end of the line.
Unterminated markers are literal text.  Matched inner content is never
re-scanned, so ``**a *b* c**`` does not nest.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import quote

from mdbridge.models import SpanStyle, TextSpan

# Same unreserved set as JavaScript's encodeURIComponent.
_URL_SAFE = "-_.!~*'()"

_BLOCK_EQUATION_RE = re.compile(r"\$\$(.+?)\$\$")
_INLINE_EQUATION_RE = re.compile(r"\$([^$]+)\$")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


def encode_url(url: str) -> str:
    """Percent-encode *url* the way ``encodeURIComponent`` does.

    >>> encode_url("https://a.b/c?d=e")
    'https%3A%2F%2Fa.b%2Fc%3Fd%3De'
    """
    return quote(url, safe=_URL_SAFE)


def _block_equation(m: re.Match[str]) -> TextSpan:
    return TextSpan(m.group(1), SpanStyle.EQUATION, display=True)


def _inline_equation(m: re.Match[str]) -> TextSpan:
    return TextSpan(m.group(1), SpanStyle.EQUATION)


def _bold(m: re.Match[str]) -> TextSpan:
    return TextSpan(m.group(1), SpanStyle.BOLD)


def _italic(m: re.Match[str]) -> TextSpan:
    return TextSpan(m.group(1), SpanStyle.ITALIC)


def _link(m: re.Match[str]) -> TextSpan:
    return TextSpan(m.group(1), SpanStyle.LINK, url=encode_url(m.group(2)))


# (first character, pattern, span factory) in precedence order.
_MARKERS: tuple[tuple[str, re.Pattern[str], Callable[[re.Match[str]], TextSpan]], ...] = (
    ("$", _BLOCK_EQUATION_RE, _block_equation),
    ("$", _INLINE_EQUATION_RE, _inline_equation),
    ("*", _BOLD_RE, _bold),
    ("*", _ITALIC_RE, _italic),
    ("[", _LINK_RE, _link),
)


def _match_marker(line: str, pos: int) -> tuple[TextSpan, int] | None:
    char = line[pos]
    for first, pattern, factory in _MARKERS:
        if char != first:
            continue
        m = pattern.match(line, pos)
        if m is not None:
            return factory(m), m.end()
    return None


def parse_inline(line: str) -> list[TextSpan]:
    """Convert one line of text into formatted spans.

    Parameters
    ----------
    line:
        A single line without its trailing newline.

    Returns
    -------
    list[TextSpan]
        Non-overlapping spans in source order.  Empty input gives ``[]``.

    Examples
    --------
    >>> [(s.style.value, s.content) for s in parse_inline("Hello *World*")]
    [('plain', 'Hello '), ('italic', 'World')]
    """
    spans: list[TextSpan] = []
    buffer: list[str] = []
    pos = 0

    while pos < len(line):
        matched = _match_marker(line, pos)
        if matched is None:
            buffer.append(line[pos])
            pos += 1
            continue
        if buffer:
            spans.append(TextSpan("".join(buffer)))
            buffer = []
        span, pos = matched
        spans.append(span)

    if buffer:
        spans.append(TextSpan("".join(buffer)))
    return spans
