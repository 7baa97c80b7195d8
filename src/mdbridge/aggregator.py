"""Two-level likes/comments rollup over the remote wiki tree.

Traversal:

1. List the first-tier nodes under the root (paginated, cached per scope).
2. For each first-tier node, list its second-tier children.
3. For each second-tier node, fetch its metric (likes, or direct and whole
   comments fetched concurrently) with a fixed ``node_delay`` pause between
   siblings.

Any failed metric fetch for one second-tier node is logged and that node
keeps a zero count; its siblings are unaffected.  Failures listing either
tier propagate and abort the run.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from mdbridge.api.feishu import FeishuDriveAPI, FeishuWikiAPI
from mdbridge.cache import NodeCache
from mdbridge.models import CommentEntry, CommentSummary, LikeEntry, LikeSummary, RemoteNode
from mdbridge.observability import NoopMetricsHook, get_logger

log = get_logger("mdbridge.aggregator")

E = TypeVar("E")


class NodeTreeAggregator:
    """Roll up per-document metrics two levels below a root node.

    Parameters
    ----------
    wiki:
        Wiki node API used for the listings.
    drive:
        Drive API used for likes and comments.
    node_url:
        Builds the public URL of a node from its token.
    cache:
        Node listing cache; a fresh one is created when omitted.
    node_delay:
        Seconds to pause between sibling metric fetches.
    metrics:
        Optional :class:`~mdbridge.observability.MetricsHook`.
    """

    def __init__(
        self,
        wiki: FeishuWikiAPI,
        drive: FeishuDriveAPI,
        node_url: Callable[[str], str],
        *,
        cache: NodeCache | None = None,
        node_delay: float = 0.2,
        metrics: Any | None = None,
    ) -> None:
        self._wiki = wiki
        self._drive = drive
        self._node_url = node_url
        self.cache = cache if cache is not None else NodeCache()
        self._node_delay = node_delay
        self._metrics = metrics if metrics is not None else NoopMetricsHook()

    async def list_nodes(self, scope: str) -> list[RemoteNode]:
        """All nodes directly under *scope*, fetched once per run."""
        return await self.cache.get_or_load(scope, self._wiki.list_nodes)

    # ------------------------------------------------------------------
    # Rollups
    # ------------------------------------------------------------------

    async def aggregate_likes(self, root: str) -> list[LikeSummary]:
        """Likes per second-tier node, summed per first-tier node."""

        async def fetch(node: RemoteNode) -> LikeEntry:
            likes = await self._drive.list_likes(node.obj_token, node.obj_type)
            return LikeEntry(node.title, self._node_url(node.node_token), _iso(node), likes=len(likes))

        def fallback(node: RemoteNode) -> LikeEntry:
            return LikeEntry(node.title, self._node_url(node.node_token), _iso(node))

        results: list[LikeSummary] = []
        for parent, children in await self._walk(root, fetch, fallback, metric="likes"):
            summary = LikeSummary(parent.title, self._node_url(parent.node_token), children)
            log.info(
                "Aggregated likes",
                extra={"extra_fields": {
                    "title": summary.title,
                    "url": summary.url,
                    "total_likes": summary.total_likes,
                    "children": len(children),
                }},
            )
            results.append(summary)
        return results

    async def aggregate_comments(self, root: str) -> list[CommentSummary]:
        """Direct and whole comments per second-tier node, summed per parent."""

        async def fetch(node: RemoteNode) -> CommentEntry:
            direct, whole = await asyncio.gather(
                self._drive.list_comments(node.obj_token, node.obj_type, is_whole=False),
                self._drive.list_comments(node.obj_token, node.obj_type, is_whole=True),
            )
            return CommentEntry(
                node.title,
                self._node_url(node.node_token),
                _iso(node),
                direct_comments=direct,
                all_comments=whole,
            )

        def fallback(node: RemoteNode) -> CommentEntry:
            return CommentEntry(node.title, self._node_url(node.node_token), _iso(node))

        results: list[CommentSummary] = []
        for parent, children in await self._walk(root, fetch, fallback, metric="comments"):
            summary = CommentSummary(parent.title, self._node_url(parent.node_token), children)
            log.info(
                "Aggregated comments",
                extra={"extra_fields": {
                    "title": summary.title,
                    "url": summary.url,
                    "total_direct_comments": summary.total_direct_comments,
                    "total_all_comments": summary.total_all_comments,
                }},
            )
            results.append(summary)
        return results

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def _walk(
        self,
        root: str,
        fetch: Callable[[RemoteNode], Awaitable[E]],
        fallback: Callable[[RemoteNode], E],
        *,
        metric: str,
    ) -> list[tuple[RemoteNode, list[E]]]:
        tree: list[tuple[RemoteNode, list[E]]] = []
        first_tier = await self.list_nodes(root)
        log.info("Listed first-tier nodes", extra={"extra_fields": {"root": root, "count": len(first_tier)}})

        for parent in first_tier:
            second_tier = await self.list_nodes(parent.node_token)
            entries: list[E] = []
            for i, child in enumerate(second_tier):
                if i:
                    await asyncio.sleep(self._node_delay)
                try:
                    entries.append(await fetch(child))
                except Exception as exc:
                    log.warning(
                        "Metric fetch failed, counting zero",
                        extra={"extra_fields": {
                            "metric": metric,
                            "title": child.title,
                            "node_token": child.node_token,
                            "error": str(exc),
                            "error_type": type(exc).__name__,
                        }},
                    )
                    self._metrics.increment("mdbridge.metric_fetch_failures_total", tags={"metric": metric})
                    entries.append(fallback(child))
            tree.append((parent, entries))
        return tree


def _iso(node: RemoteNode) -> str:
    return node.created_at().isoformat()


def write_report(results: Sequence[LikeSummary | CommentSummary], path: str | Path) -> Path:
    """Write *results* as indented UTF-8 JSON and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    log.info("Report written", extra={"extra_fields": {"path": str(path), "entries": len(results)}})
    return path
