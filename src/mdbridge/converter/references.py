"""Citation linking for the notes platform.

Academic-style documents cite sources as ``[1]`` or ``[2, 3]`` and list
them under a ``## References`` heading::

    ## References
    [1] Attention Is All You Need. https://arxiv.org/abs/1706.03762

:func:`link_citations` rewrites the plain spans of every paragraph so that
each cited number becomes a link span pointing at its reference URL.
Numbers without a known URL stay plain.
"""

from __future__ import annotations

import re

from mdbridge.converter.inline import encode_url
from mdbridge.models import Block, BlockKind, SpanStyle, TextSpan

_REFERENCES_RE = re.compile(r"^## References[ \t]*\n(.*?)(?=\n##|\Z)", re.DOTALL | re.MULTILINE)
_REFERENCE_LINE_RE = re.compile(r"^\[(\d+)\].*?(https?://\S+)")
_CITATION_RE = re.compile(r"\[(\d+(?:\s*,\s*\d+)*)\]")


def extract_reference_urls(markdown: str) -> dict[str, str]:
    """Map citation numbers to URLs from the ``## References`` section.

    >>> extract_reference_urls("## References\\n[1] Paper https://a.io/x\\n")
    {'1': 'https://a.io/x'}
    """
    section = _REFERENCES_RE.search(markdown)
    if section is None:
        return {}
    urls: dict[str, str] = {}
    for line in section.group(1).strip().split("\n"):
        m = _REFERENCE_LINE_RE.match(line.strip())
        if m:
            urls[m.group(1)] = m.group(2).strip()
    return urls


def _link_span(text: str, urls: dict[str, str]) -> list[TextSpan]:
    spans: list[TextSpan] = []
    last = 0
    for m in _CITATION_RE.finditer(text):
        if m.start() > last:
            spans.append(TextSpan(text[last:m.start()]))
        numbers = [n.strip() for n in m.group(1).split(",")]
        for i, number in enumerate(numbers):
            spans.append(TextSpan(", " if i else "["))
            url = urls.get(number)
            if url:
                spans.append(TextSpan(number, SpanStyle.LINK, url=encode_url(url)))
            else:
                spans.append(TextSpan(number))
        spans.append(TextSpan("]"))
        last = m.end()
    if last < len(text):
        spans.append(TextSpan(text[last:]))
    return spans


def link_citations(blocks: list[Block], urls: dict[str, str]) -> list[Block]:
    """Return *blocks* with citations in paragraph plain spans linked.

    Blocks other than paragraphs, and paragraphs without citations, are
    returned unchanged.
    """
    if not urls:
        return list(blocks)

    result: list[Block] = []
    for block in blocks:
        if block.kind != BlockKind.PARAGRAPH or not any(
            span.style == SpanStyle.PLAIN and _CITATION_RE.search(span.content)
            for span in block.spans
        ):
            result.append(block)
            continue
        spans: list[TextSpan] = []
        for span in block.spans:
            if span.style == SpanStyle.PLAIN:
                spans.extend(_link_span(span.content, urls))
            else:
                spans.append(span)
        result.append(Block(BlockKind.PARAGRAPH, spans=tuple(spans)))
    return result
