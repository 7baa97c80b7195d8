"""Per-run cache of remote wiki node listings.

Listing a parent's children is paginated and rate limited, so each scope
(parent node token) is fetched at most once per run.  Once populated, a
scope's list is authoritative until :meth:`NodeCache.invalidate` is called.
Nodes created during the run are added with :meth:`NodeCache.add` so later
title lookups see them without a re-fetch.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from mdbridge.models import RemoteNode
from mdbridge.observability import get_logger

log = get_logger("mdbridge.cache")

Loader = Callable[[str], Awaitable[list[RemoteNode]]]


class NodeCache:
    """Node lists keyed by scope token."""

    def __init__(self) -> None:
        self._nodes: dict[str, list[RemoteNode]] = {}

    def __contains__(self, scope: str) -> bool:
        return scope in self._nodes

    def get(self, scope: str) -> list[RemoteNode] | None:
        """The cached list for *scope*, or ``None`` if it was never loaded."""
        nodes = self._nodes.get(scope)
        return list(nodes) if nodes is not None else None

    def put(self, scope: str, nodes: list[RemoteNode]) -> None:
        self._nodes[scope] = list(nodes)

    async def get_or_load(self, scope: str, loader: Loader) -> list[RemoteNode]:
        """Return the cached list for *scope*, loading it on first use.

        Loader failures propagate and leave the scope unpopulated.
        """
        if scope not in self._nodes:
            nodes = await loader(scope)
            self._nodes[scope] = list(nodes)
            log.info(
                "Cached node listing",
                extra={"extra_fields": {"scope": scope, "count": len(nodes)}},
            )
        return list(self._nodes[scope])

    def add(self, scope: str, node: RemoteNode) -> None:
        """Record a node created under *scope* during this run."""
        self._nodes.setdefault(scope, []).append(node)

    def find_by_title(self, scope: str, title: str) -> RemoteNode | None:
        """First cached node under *scope* whose title equals *title*."""
        for node in self._nodes.get(scope, []):
            if node.title == title:
                return node
        return None

    def invalidate(self, scope: str | None = None) -> None:
        """Drop one scope, or every scope when *scope* is ``None``."""
        if scope is None:
            self._nodes.clear()
        else:
            self._nodes.pop(scope, None)
