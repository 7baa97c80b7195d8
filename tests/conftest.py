"""Shared test fixtures for the mdbridge test suite."""

from __future__ import annotations

import pytest

from mdbridge.config import MdBridgeConfig
from mdbridge.models import RemoteNode


@pytest.fixture
def config() -> MdBridgeConfig:
    """Fully populated test configuration with no pacing delays."""
    return MdBridgeConfig(
        feishu_app_id="cli_test_app",
        feishu_app_secret="feishu-secret-5678",
        feishu_wiki_space_id="space1",
        feishu_root_token="root_tok",
        feishu_domain_name="acme",
        notion_token="secret_notion_1234",
        notion_parent_page_id="parent-page",
        batch_delay=0.0,
        page_delay=0.0,
        node_delay=0.0,
        document_delay=0.0,
        rate_limit_rps=10_000.0,
    )


@pytest.fixture
def make_node():
    """Factory for :class:`RemoteNode` objects keyed by a short name."""

    def _make(name: str, title: str | None = None, created: str = "1700000000") -> RemoteNode:
        return RemoteNode(
            node_token=f"node_{name}",
            obj_token=f"obj_{name}",
            title=title if title is not None else name,
            node_create_time=created,
        )

    return _make
