"""Tests for run-level orchestration."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from mdbridge.errors import MdBridgeAuthError, MdBridgeServerError
from mdbridge.ledger import Ledger
from mdbridge.models import DocumentResult, LikeEntry, LikeSummary
from mdbridge.pipeline import (
    collect_likes,
    find_markdown_files,
    publish_to_feishu,
    publish_to_notion,
)


@pytest.fixture
def files_dir(tmp_path):
    d = tmp_path / "files"
    d.mkdir()
    (d / "b.md").write_text("# B", encoding="utf-8")
    (d / "a.md").write_text("# A", encoding="utf-8")
    (d / "notes.txt").write_text("ignored", encoding="utf-8")
    return d


def fake_publisher(fail: set[str] | None = None):
    fail = fail or set()

    async def _publish(markdown: str, name: str) -> DocumentResult:
        if name in fail:
            raise MdBridgeServerError("boom", context={"name": name})
        return DocumentResult(file=name, success=True, url=f"https://remote/{name}", blocks_uploaded=1)

    publisher = MagicMock()
    publisher.preload = AsyncMock(return_value=[])
    publisher.publish = AsyncMock(side_effect=_publish)
    publisher.close = AsyncMock()
    return publisher


class TestFindMarkdownFiles:
    def test_sorted_markdown_only(self, files_dir):
        assert [p.name for p in find_markdown_files(files_dir)] == ["a.md", "b.md"]

    def test_missing_directory(self, tmp_path):
        assert find_markdown_files(tmp_path / "nope") == []


class TestPublishToFeishu:
    async def test_publishes_in_order(self, config, files_dir):
        publisher = fake_publisher()
        summary = await publish_to_feishu(config, find_markdown_files(files_dir), publisher=publisher)

        publisher.preload.assert_awaited_once()
        assert [c.args for c in publisher.publish.await_args_list] == [("# A", "a"), ("# B", "b")]
        assert [r.file for r in summary.results] == ["a.md", "b.md"]
        assert summary.processed == 2
        # Caller-owned publishers are left open.
        publisher.close.assert_not_awaited()

    async def test_failure_does_not_stop_run(self, config, files_dir):
        summary = await publish_to_feishu(
            config, find_markdown_files(files_dir), publisher=fake_publisher(fail={"a"}),
        )
        assert summary.failed == 1
        assert summary.processed == 1
        [failure] = summary.failures()
        assert failure.file == "a.md"
        assert failure.error == "boom"

    async def test_undecodable_file_does_not_stop_run(self, config, tmp_path):
        (tmp_path / "a.md").write_bytes(b"\xff\xfe\x00not utf-8")
        (tmp_path / "b.md").write_text("# ok", encoding="utf-8")
        publisher = fake_publisher()

        summary = await publish_to_feishu(config, find_markdown_files(tmp_path), publisher=publisher)

        assert (summary.failed, summary.processed) == (1, 1)
        [failure] = summary.failures()
        assert failure.file == "a.md"
        assert failure.error.startswith("UnicodeDecodeError")
        assert [c.args for c in publisher.publish.await_args_list] == [("# ok", "b")]

    async def test_transport_error_does_not_stop_run(self, config, files_dir):
        publisher = fake_publisher()
        publisher.publish = AsyncMock(side_effect=[
            httpx.RemoteProtocolError("peer closed"),
            DocumentResult(file="b", success=True, url="https://remote/b"),
        ])

        summary = await publish_to_feishu(config, find_markdown_files(files_dir), publisher=publisher)

        assert (summary.failed, summary.processed) == (1, 1)
        assert summary.failures()[0].error == "RemoteProtocolError: peer closed"

    async def test_preload_failure_propagates(self, config, files_dir):
        publisher = fake_publisher()
        publisher.preload = AsyncMock(side_effect=MdBridgeAuthError("bad credentials"))
        with pytest.raises(MdBridgeAuthError):
            await publish_to_feishu(config, find_markdown_files(files_dir), publisher=publisher)
        publisher.publish.assert_not_awaited()

    async def test_document_delay_between_files(self, config, files_dir):
        config.document_delay = 1.5
        with patch("mdbridge.pipeline.asyncio.sleep", new=AsyncMock()) as sleep:
            await publish_to_feishu(config, find_markdown_files(files_dir), publisher=fake_publisher())
        sleep.assert_awaited_once_with(1.5)


class TestPublishToNotion:
    async def test_records_and_saves_ledger(self, config, files_dir):
        ledger = Ledger(files_dir / "metadata.json")
        summary = await publish_to_notion(
            config, find_markdown_files(files_dir), ledger, publisher=fake_publisher(),
        )

        assert summary.processed == 2
        saved = Ledger.load(files_dir / "metadata.json")
        assert saved.find("a.md").url == "https://remote/a"
        assert saved.find("b.md").url == "https://remote/b"

    async def test_processed_files_skipped(self, config, files_dir):
        ledger = Ledger(files_dir / "metadata.json")
        ledger.record("a.md", "https://remote/old-a", "# A")
        publisher = fake_publisher()

        summary = await publish_to_notion(config, find_markdown_files(files_dir), ledger, publisher=publisher)

        assert [c.args[1] for c in publisher.publish.await_args_list] == ["b"]
        skipped = summary.results[0]
        assert skipped.skipped and skipped.success
        assert skipped.url == "https://remote/old-a"
        assert summary.skipped == 1

    async def test_stale_file_skipped_by_default(self, config, files_dir):
        ledger = Ledger(files_dir / "metadata.json")
        ledger.record("a.md", "https://remote/old-a", "# previous A")
        publisher = fake_publisher()

        await publish_to_notion(config, find_markdown_files(files_dir), ledger, publisher=publisher)
        assert [c.args[1] for c in publisher.publish.await_args_list] == ["b"]

    async def test_stale_file_reuploaded_when_asked(self, config, files_dir):
        ledger = Ledger(files_dir / "metadata.json")
        ledger.record("a.md", "https://remote/old-a", "# previous A")
        publisher = fake_publisher()

        summary = await publish_to_notion(
            config, find_markdown_files(files_dir), ledger, reupload_changed=True, publisher=publisher,
        )

        assert [c.args[1] for c in publisher.publish.await_args_list] == ["a", "b"]
        assert summary.skipped == 0
        assert ledger.find("a.md").url == "https://remote/a"
        assert not ledger.is_stale("a.md", "# A")

    async def test_failed_file_not_recorded(self, config, files_dir):
        ledger = Ledger(files_dir / "metadata.json")
        summary = await publish_to_notion(
            config, find_markdown_files(files_dir), ledger, publisher=fake_publisher(fail={"b"}),
        )

        assert summary.failed == 1
        assert ledger.needs_processing("b.md")
        assert not ledger.needs_processing("a.md")

    async def test_unexpected_error_not_recorded(self, config, files_dir):
        ledger = Ledger(files_dir / "metadata.json")
        publisher = fake_publisher()
        publisher.publish = AsyncMock(side_effect=[
            KeyError("id"),
            DocumentResult(file="b", success=True, url="https://remote/b"),
        ])

        summary = await publish_to_notion(config, find_markdown_files(files_dir), ledger, publisher=publisher)

        assert (summary.failed, summary.processed) == (1, 1)
        assert ledger.needs_processing("a.md")
        assert ledger.find("b.md").url == "https://remote/b"

    async def test_unreadable_recorded_file_fails_alone(self, config, files_dir):
        (files_dir / "a.md").write_bytes(b"\xff\xfe")
        ledger = Ledger(files_dir / "metadata.json")
        ledger.record("a.md", "https://remote/old-a", "# A")
        publisher = fake_publisher()

        summary = await publish_to_notion(config, find_markdown_files(files_dir), ledger, publisher=publisher)

        assert [r.file for r in summary.failures()] == ["a.md"]
        assert [c.args[1] for c in publisher.publish.await_args_list] == ["b"]


class TestCollectLikes:
    async def test_report_written(self, config, tmp_path):
        aggregator = MagicMock()
        aggregator.aggregate_likes = AsyncMock(return_value=[
            LikeSummary("Guides", "https://acme.feishu.cn/wiki/g", [LikeEntry("Intro", "u", "1700000000", likes=4)]),
        ])
        output = tmp_path / "out" / "likes.json"

        with patch("mdbridge.pipeline.build_aggregator", return_value=aggregator):
            results = await collect_likes(config, output)

        aggregator.aggregate_likes.assert_awaited_once_with("root_tok")
        assert len(results) == 1
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data[0]["totalLikes"] == 4
