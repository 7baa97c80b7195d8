"""Public data models for mdbridge.

This module contains the converter's block tree (:class:`TextSpan`,
:class:`Block` and their payload types), the remote node descriptor used by
the wiki traversal, the aggregation summary types written to reports, and
the result types returned by the publishing pipeline.  All types are plain
dataclasses with no behaviour beyond small derived accessors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from mdbridge.observability import get_logger

log = get_logger("mdbridge.models")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SpanStyle(str, Enum):
    """Style tag of one inline text run."""

    PLAIN = "plain"
    BOLD = "bold"
    ITALIC = "italic"
    LINK = "link"
    EQUATION = "equation"


class BlockKind(str, Enum):
    """Structural kind of a converted block."""

    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    HEADING_4 = "heading_4"
    HEADING_5 = "heading_5"
    HEADING_6 = "heading_6"
    BULLET_ITEM = "bullet_item"
    ORDERED_ITEM = "ordered_item"
    DIVIDER = "divider"
    PARAGRAPH = "paragraph"
    TABLE = "table"
    FIGURE = "figure"

    TABLE_OF_CONTENTS = "table_of_contents"
    """Only inserted by the notes-platform preamble, never by the classifier."""

    @classmethod
    def heading(cls, level: int) -> BlockKind:
        """Return the heading kind for *level* (1-6)."""
        if not 1 <= level <= 6:
            raise ValueError(f"heading level must be within 1..6, got {level}")
        return cls(f"heading_{level}")


_HEADING_KINDS: frozenset[BlockKind] = frozenset(
    BlockKind.heading(level) for level in range(1, 7)
)

# Kinds that cannot travel in an ordinary append batch.
INTERRUPTING_KINDS: frozenset[BlockKind] = frozenset({BlockKind.TABLE, BlockKind.FIGURE})


# ---------------------------------------------------------------------------
# Block tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextSpan:
    """One formatted run of inline text.

    Attributes
    ----------
    content:
        The visible text, or the raw formula for equation spans.
    style:
        The span's style tag.
    url:
        Percent-encoded link target (link spans only).
    display:
        ``True`` for block equations (``$$...$$``), ``False`` for inline
        ``$...$`` equations and all other styles.
    """

    content: str
    style: SpanStyle = SpanStyle.PLAIN
    url: str | None = None
    display: bool = False


@dataclass(frozen=True)
class TableGrid:
    """Row-major grid of table cell strings.

    Rows may have unequal lengths; :attr:`width` is the longest row and
    consumers treat missing trailing cells as empty.
    """

    rows: tuple[tuple[str, ...], ...] = ()

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def padded_rows(self) -> list[list[str]]:
        """Return the rows right-padded with ``""`` up to :attr:`width`."""
        width = self.width
        return [list(row) + [""] * (width - len(row)) for row in self.rows]


@dataclass(frozen=True)
class FigureDirective:
    """An embedded ``<figure>`` tag carrying a diagram or table source."""

    title: str
    figure_type: str
    content: str


@dataclass(frozen=True)
class Block:
    """One structural unit of a converted document.

    ``kind`` discriminates the payload: text-bearing kinds use ``spans``,
    ``TABLE`` uses ``table`` and ``FIGURE`` uses ``figure``.
    """

    kind: BlockKind
    spans: tuple[TextSpan, ...] = ()
    table: TableGrid | None = None
    figure: FigureDirective | None = None

    @property
    def heading_level(self) -> int | None:
        if self.kind in _HEADING_KINDS:
            return int(self.kind.value.rsplit("_", 1)[1])
        return None

    @property
    def interrupts_batch(self) -> bool:
        return self.kind in INTERRUPTING_KINDS

    def plain_text(self) -> str:
        """Concatenate span contents, ignoring styles."""
        return "".join(span.content for span in self.spans)


# ---------------------------------------------------------------------------
# Conversion warnings
# ---------------------------------------------------------------------------

@dataclass
class ConversionWarning:
    """A non-fatal issue encountered while converting or uploading.

    Attributes
    ----------
    code:
        A machine-readable warning code (e.g. ``"FIGURE_SKIPPED"``).
    message:
        A human-readable description of the issue.
    context:
        Arbitrary structured data for diagnostics.
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Remote wiki nodes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteNode:
    """A node of the remote wiki tree, as returned by the node listing API.

    The system never mutates remote nodes; it only indexes them by title or
    token.
    """

    node_token: str
    obj_token: str
    title: str
    obj_type: str = "docx"
    node_create_time: str = ""
    parent_token: str = ""
    has_child: bool = False

    @classmethod
    def from_api(cls, item: dict[str, Any], parent_token: str = "") -> RemoteNode:
        """Build a node from a wiki ``node`` JSON object."""
        return cls(
            node_token=item.get("node_token", ""),
            obj_token=item.get("obj_token", ""),
            title=item.get("title", ""),
            obj_type=item.get("obj_type", "docx"),
            node_create_time=str(item.get("node_create_time", "") or ""),
            parent_token=item.get("parent_node_token", parent_token) or parent_token,
            has_child=bool(item.get("has_child", False)),
        )

    def created_at(self) -> datetime:
        """Creation time as an aware UTC datetime, falling back to *now*."""
        try:
            return datetime.fromtimestamp(int(self.node_create_time), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            log.warning(
                "Malformed node creation time, using current time",
                extra={"extra_fields": {
                    "node_token": self.node_token,
                    "node_create_time": self.node_create_time,
                }},
            )
            return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Aggregation summaries
# ---------------------------------------------------------------------------

@dataclass
class LikeEntry:
    """Likes on one second-tier node."""

    title: str
    url: str
    create_time: str
    likes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "createTime": self.create_time,
            "likes": self.likes,
        }


@dataclass
class LikeSummary:
    """Likes rolled up over the children of one first-tier node."""

    title: str
    url: str
    children: list[LikeEntry] = field(default_factory=list)

    @property
    def total_likes(self) -> int:
        return sum(child.likes for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "totalLikes": self.total_likes,
            "url": self.url,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class CommentEntry:
    """Comments on one second-tier node."""

    title: str
    url: str
    create_time: str
    direct_comments: list[dict[str, Any]] = field(default_factory=list)
    all_comments: list[dict[str, Any]] = field(default_factory=list)

    @property
    def direct_comment_count(self) -> int:
        return len(self.direct_comments)

    @property
    def all_comment_count(self) -> int:
        return len(self.all_comments)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "createTime": self.create_time,
            "directCommentCount": self.direct_comment_count,
            "allCommentCount": self.all_comment_count,
            "comments": {
                "direct": self.direct_comments,
                "all": self.all_comments,
            },
        }


@dataclass
class CommentSummary:
    """Comments rolled up over the children of one first-tier node."""

    title: str
    url: str
    children: list[CommentEntry] = field(default_factory=list)

    @property
    def total_direct_comments(self) -> int:
        return sum(child.direct_comment_count for child in self.children)

    @property
    def total_all_comments(self) -> int:
        return sum(child.all_comment_count for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "totalDirectComments": self.total_direct_comments,
            "totalAllComments": self.total_all_comments,
            "children": [child.to_dict() for child in self.children],
        }


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

@dataclass
class LedgerEntry:
    """One row of the local metadata ledger."""

    title: str
    file: str
    url: str = ""
    date: str = ""
    content_hash: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerEntry:
        return cls(
            title=data.get("title", ""),
            file=data.get("file", ""),
            url=data.get("notion_url", "") or "",
            date=data.get("date", "") or "",
            content_hash=data.get("content_hash", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "file": self.file,
            "notion_url": self.url,
            "date": self.date,
            "content_hash": self.content_hash,
        }


# ---------------------------------------------------------------------------
# Pipeline results
# ---------------------------------------------------------------------------

@dataclass
class DocumentResult:
    """Outcome of publishing one Markdown file.

    Attributes
    ----------
    file:
        Source file name.
    success:
        ``False`` when the document failed; ``error`` then holds the reason.
    url:
        URL of the produced remote document.
    parent_url:
        Wiki target only: URL of the per-file parent node.
    skipped:
        ``True`` when the ledger showed the file was already processed.
    blocks_uploaded:
        Top-level blocks committed to the remote document.
    """

    file: str
    success: bool
    url: str = ""
    parent_url: str = ""
    error: str = ""
    skipped: bool = False
    blocks_uploaded: int = 0
    created: str = field(default_factory=lambda: date.today().isoformat())
    warnings: list[ConversionWarning] = field(default_factory=list)


@dataclass
class RunSummary:
    """All document results of one publishing run."""

    results: list[DocumentResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.success and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def failures(self) -> list[DocumentResult]:
        return [r for r in self.results if not r.success]
