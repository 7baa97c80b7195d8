"""mdbridge: publish Markdown to a Feishu wiki or Notion, and collect statistics.

Public re-exports
-----------------

* **Publishers:** :class:`FeishuPublisher`, :class:`NotionPublisher`
* **Aggregation:** :class:`NodeTreeAggregator`
* **Configuration:** :class:`MdBridgeConfig`
* **Errors:** Every :class:`MdBridgeError` subclass and :class:`ErrorCode`
* **Models:** Block model, result dataclasses and report entries

Usage::

    import asyncio
    from mdbridge import MdBridgeConfig, NotionPublisher

    async def main():
        config = MdBridgeConfig.from_env()
        async with NotionPublisher(config) as publisher:
            result = await publisher.publish("# Hello\\n\\nWorld", "hello")
            print(result.url)

    asyncio.run(main())
"""

from __future__ import annotations

__version__ = "0.1.0"

# ── Aggregation ─────────────────────────────────────────────────────────
from mdbridge.aggregator import NodeTreeAggregator, write_report

# ── Configuration ───────────────────────────────────────────────────────
from mdbridge.config import MdBridgeConfig

# ── Errors ──────────────────────────────────────────────────────────────
from mdbridge.errors import (
    ErrorCode,
    MdBridgeAPIError,
    MdBridgeAuthError,
    MdBridgeConfigError,
    MdBridgeConversionError,
    MdBridgeError,
    MdBridgeLedgerError,
    MdBridgeNetworkError,
    MdBridgeNotFoundError,
    MdBridgePermissionError,
    MdBridgeRateLimitError,
    MdBridgeRenderError,
    MdBridgeServerError,
    MdBridgeUploadError,
    MdBridgeValidationError,
)
from mdbridge.ledger import Ledger

# ── Models ──────────────────────────────────────────────────────────────
from mdbridge.models import (
    Block,
    BlockKind,
    CommentEntry,
    CommentSummary,
    ConversionWarning,
    DocumentResult,
    FigureDirective,
    LedgerEntry,
    LikeEntry,
    LikeSummary,
    RemoteNode,
    RunSummary,
    SpanStyle,
    TableGrid,
    TextSpan,
)

# ── Publishers ──────────────────────────────────────────────────────────
from mdbridge.publishers import FeishuPublisher, NotionPublisher

__all__ = [
    "__version__",
    # Publishers
    "FeishuPublisher",
    "NotionPublisher",
    # Aggregation
    "NodeTreeAggregator",
    "write_report",
    # Configuration / ledger
    "MdBridgeConfig",
    "Ledger",
    # Error base + code enum
    "MdBridgeError",
    "ErrorCode",
    # API / transport errors
    "MdBridgeValidationError",
    "MdBridgeAuthError",
    "MdBridgePermissionError",
    "MdBridgeNotFoundError",
    "MdBridgeRateLimitError",
    "MdBridgeServerError",
    "MdBridgeNetworkError",
    "MdBridgeAPIError",
    # Local errors
    "MdBridgeConfigError",
    "MdBridgeConversionError",
    "MdBridgeRenderError",
    "MdBridgeUploadError",
    "MdBridgeLedgerError",
    # Models: block tree
    "Block",
    "BlockKind",
    "SpanStyle",
    "TextSpan",
    "TableGrid",
    "FigureDirective",
    "ConversionWarning",
    # Models: results and reports
    "DocumentResult",
    "RunSummary",
    "RemoteNode",
    "LikeEntry",
    "LikeSummary",
    "CommentEntry",
    "CommentSummary",
    "LedgerEntry",
]
