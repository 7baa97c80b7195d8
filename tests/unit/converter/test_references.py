"""Tests for citation linking (converter/references.py)."""

from __future__ import annotations

from mdbridge.converter.references import extract_reference_urls, link_citations
from mdbridge.models import Block, BlockKind, SpanStyle, TextSpan

DOC = """# Paper

As shown in [1, 2] and [3].

## References
[1] First. https://a.io/1
[2] Second https://b.io/2
[3] No link here

## Appendix
[4] Later https://d.io/4
"""


class TestExtractReferenceUrls:
    def test_only_references_section(self):
        assert extract_reference_urls(DOC) == {"1": "https://a.io/1", "2": "https://b.io/2"}

    def test_no_section(self):
        assert extract_reference_urls("# Title\n[1] x https://a.io") == {}


class TestLinkCitations:
    def test_links_known_numbers(self):
        block = Block(BlockKind.PARAGRAPH, spans=(TextSpan("see [1, 3] now"),))
        [out] = link_citations([block], {"1": "https://a.io/1"})
        assert out.spans == (
            TextSpan("see "),
            TextSpan("["),
            TextSpan("1", SpanStyle.LINK, url="https%3A%2F%2Fa.io%2F1"),
            TextSpan(", "),
            TextSpan("3"),
            TextSpan("]"),
            TextSpan(" now"),
        )

    def test_styled_spans_untouched(self):
        bold = TextSpan("[1]", SpanStyle.BOLD)
        block = Block(BlockKind.PARAGRAPH, spans=(bold,))
        assert link_citations([block], {"1": "https://a.io"}) == [block]

    def test_non_paragraphs_untouched(self):
        block = Block(BlockKind.BULLET_ITEM, spans=(TextSpan("[1]"),))
        assert link_citations([block], {"1": "https://a.io"}) == [block]

    def test_no_urls_is_identity(self):
        block = Block(BlockKind.PARAGRAPH, spans=(TextSpan("[1]"),))
        assert link_citations([block], {}) == [block]
