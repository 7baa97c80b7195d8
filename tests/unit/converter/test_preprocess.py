"""Tests for whole-document passes and figure directives."""

from __future__ import annotations

from mdbridge.converter.figures import parse_figure, restore_newlines
from mdbridge.converter.preprocess import (
    collapse_block_equations,
    normalize_newlines,
    preprocess,
)
from mdbridge.models import FigureDirective


class TestNormalizeNewlines:
    def test_crlf_and_cr(self):
        assert normalize_newlines("a\r\nb\rc\n") == "a\nb\nc\n"


class TestCollapseBlockEquations:
    def test_multiline_collapsed(self):
        assert collapse_block_equations("$$\n  x =\n\n y\n$$") == "$$x = y$$"

    def test_single_line_untouched(self):
        assert collapse_block_equations("$$ x $$") == "$$ x $$"

    def test_surrounding_text_kept(self):
        text = "intro\n$$\na\n$$\noutro"
        assert collapse_block_equations(text) == "intro\n$$a$$\noutro"

    def test_unterminated_left_alone(self):
        assert collapse_block_equations("$$\na\n") == "$$\na\n"

    def test_preprocess_runs_both(self):
        assert preprocess("$$\r\na\r\n$$") == "$$a$$"


class TestParseFigure:
    def test_diagram(self):
        line = '<figure title="Flow" type="diagram">graph LR\\nA-->B</figure>'
        assert parse_figure(line) == FigureDirective("Flow", "diagram", "graph LR\nA-->B")

    def test_surrounding_whitespace(self):
        assert parse_figure('  <figure title="" type="table">|a|</figure>  ') is not None

    def test_not_a_figure(self):
        assert parse_figure("<figure>nope</figure>") is None
        assert parse_figure("plain") is None

    def test_restore_newlines(self):
        assert restore_newlines("a\\nb") == "a\nb"
