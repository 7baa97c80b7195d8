"""Run-level orchestration: one call per CLI command.

Each publishing run walks the Markdown files in order, publishes them one at
a time with a fixed ``document_delay`` pause in between, and records every
outcome in a :class:`~mdbridge.models.RunSummary`.  Any failure of one
document, an unreadable source file included, is logged with its file name
and does not stop the run; failures
that happen before the first document (authentication, root listing)
propagate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from mdbridge.aggregator import NodeTreeAggregator, write_report
from mdbridge.api.feishu import FeishuDriveAPI, FeishuWikiAPI
from mdbridge.api.transport import FeishuTransport
from mdbridge.config import MdBridgeConfig
from mdbridge.errors import MdBridgeError
from mdbridge.ledger import Ledger
from mdbridge.models import CommentSummary, DocumentResult, LikeSummary, RunSummary
from mdbridge.observability import get_logger
from mdbridge.publishers import FeishuPublisher, NotionPublisher

log = get_logger("mdbridge.pipeline")

Publish = Callable[[str, str], Awaitable[DocumentResult]]


def find_markdown_files(directory: str | Path) -> list[Path]:
    """``*.md`` files directly inside *directory*, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        log.warning("Files directory does not exist", extra={"extra_fields": {"path": str(directory)}})
        return []
    return sorted(p for p in directory.glob("*.md") if p.is_file())


def _failed(path: Path, exc: Exception) -> DocumentResult:
    """Log *exc* against *path* and return the failed result."""
    if isinstance(exc, MdBridgeError):
        log.error(
            "Document failed",
            extra={"extra_fields": {"file": path.name, "code": exc.code, "error": exc.message}},
        )
        return DocumentResult(file=path.name, success=False, error=exc.message)
    log.error(
        "Document failed",
        exc_info=exc,
        extra={"extra_fields": {"file": path.name, "error": f"{type(exc).__name__}: {exc}"}},
    )
    return DocumentResult(file=path.name, success=False, error=f"{type(exc).__name__}: {exc}")


async def _publish_one(path: Path, publish: Publish) -> tuple[DocumentResult, str]:
    content = ""
    try:
        content = path.read_text(encoding="utf-8")
        result = await publish(content, path.stem)
    except Exception as exc:
        return _failed(path, exc), content
    result.file = path.name
    for warning in result.warnings:
        log.warning(
            "Conversion warning",
            extra={"extra_fields": {"file": path.name, "code": warning.code, "warning": warning.message}},
        )
    return result, content


async def publish_to_feishu(
    config: MdBridgeConfig,
    files: Sequence[Path],
    *,
    publisher: FeishuPublisher | None = None,
) -> RunSummary:
    """Publish every file in *files* into the Feishu wiki."""
    summary = RunSummary()
    owned = publisher is None
    publisher = publisher or FeishuPublisher(config)
    try:
        await publisher.preload()
        for i, path in enumerate(files):
            if i:
                await asyncio.sleep(config.document_delay)
            log.info("Publishing document", extra={"extra_fields": {"file": path.name, "target": "feishu"}})
            result, _ = await _publish_one(path, publisher.publish)
            summary.results.append(result)
    finally:
        if owned:
            await publisher.close()
    _log_summary(summary, "feishu")
    return summary


async def publish_to_notion(
    config: MdBridgeConfig,
    files: Sequence[Path],
    ledger: Ledger,
    *,
    reupload_changed: bool = False,
    publisher: NotionPublisher | None = None,
) -> RunSummary:
    """Publish every unprocessed file in *files* as a Notion page.

    Files the ledger already holds a URL for are skipped, unless their
    source changed since upload and *reupload_changed* is set.  The ledger
    is saved after every successful upload.
    """
    summary = RunSummary()
    owned = publisher is None
    publisher = publisher or NotionPublisher(config)
    try:
        published = 0
        for path in files:
            if not ledger.needs_processing(path.name):
                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    summary.results.append(_failed(path, exc))
                    continue
                stale = ledger.is_stale(path.name, content)
                if stale:
                    log.warning(
                        "Source changed since upload",
                        extra={"extra_fields": {"file": path.name, "reupload": reupload_changed}},
                    )
                if not (stale and reupload_changed):
                    entry = ledger.find(path.name)
                    summary.results.append(DocumentResult(
                        file=path.name, success=True, skipped=True, url=entry.url if entry else "",
                    ))
                    log.info("Skipping processed document", extra={"extra_fields": {"file": path.name}})
                    continue

            if published:
                await asyncio.sleep(config.document_delay)
            published += 1
            log.info("Publishing document", extra={"extra_fields": {"file": path.name, "target": "notion"}})
            result, content = await _publish_one(path, publisher.publish)
            summary.results.append(result)
            if result.success:
                ledger.record(path.name, result.url, content)
                ledger.save()
    finally:
        if owned:
            await publisher.close()
    _log_summary(summary, "notion")
    return summary


def _log_summary(summary: RunSummary, target: str) -> None:
    log.info(
        "Run finished",
        extra={"extra_fields": {
            "target": target,
            "total": summary.total,
            "processed": summary.processed,
            "skipped": summary.skipped,
            "failed": summary.failed,
        }},
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def build_aggregator(config: MdBridgeConfig, transport: FeishuTransport) -> NodeTreeAggregator:
    return NodeTreeAggregator(
        FeishuWikiAPI(transport, config.feishu_wiki_space_id),
        FeishuDriveAPI(transport),
        config.wiki_url,
        node_delay=config.node_delay,
        metrics=config.metrics,
    )


async def collect_likes(config: MdBridgeConfig, output: str | Path) -> list[LikeSummary]:
    """Aggregate likes under the root node and write them to *output*."""
    async with FeishuTransport(config) as transport:
        results = await build_aggregator(config, transport).aggregate_likes(config.feishu_root_token)
    write_report(results, output)
    return results


async def collect_comments(config: MdBridgeConfig, output: str | Path) -> list[CommentSummary]:
    """Aggregate comments under the root node and write them to *output*."""
    async with FeishuTransport(config) as transport:
        results = await build_aggregator(config, transport).aggregate_comments(config.feishu_root_token)
    write_report(results, output)
    return results
