"""Tests for MdBridgeConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from mdbridge.config import (
    ENV_FIELDS,
    FEISHU_UPLOAD_FIELDS,
    NOTION_UPLOAD_FIELDS,
    MdBridgeConfig,
)
from mdbridge.errors import ErrorCode, MdBridgeConfigError


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so values loaded from .env files are removed on teardown.
    for name in ENV_FIELDS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestDefaults:
    def test_defaults(self):
        c = MdBridgeConfig()
        assert c.feishu_batch_size == 50
        assert c.notion_batch_size == 100
        assert c.page_size == 50
        assert c.batch_delay == c.page_delay == c.node_delay == 0.2
        assert c.document_delay == 1.0
        assert c.renderer_command == "mmdc"
        assert c.resolved_ledger_path == Path("./files") / "metadata.json"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"feishu_batch_size": 0},
            {"page_size": 0},
            {"batch_delay": -1},
            {"rate_limit_rps": 0},
            {"timeout_seconds": 0},
            {"renderer_timeout": 0},
            {"heading_overflow": "drop"},
        ],
    )
    def test_validation(self, overrides):
        with pytest.raises(ValueError):
            MdBridgeConfig(**overrides)


class TestFromEnv:
    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("FEISHU_APP_ID", "cli_1")
        clean_env.setenv("NOTION_INTEGRATION_TOKEN", "secret_x")
        clean_env.setenv("MDBRIDGE_FILES_DIR", "docs")
        c = MdBridgeConfig.from_env(tmp_path / "absent.env")
        assert c.feishu_app_id == "cli_1"
        assert c.notion_token == "secret_x"
        assert c.files_dir == "docs"

    def test_env_file_does_not_override_process(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FEISHU_DOMAIN_NAME=fromfile\nFEISHU_ROOT_TOKEN=rootfile\n", encoding="utf-8")
        clean_env.setenv("FEISHU_DOMAIN_NAME", "fromprocess")

        c = MdBridgeConfig.from_env(env_file)
        assert c.feishu_domain_name == "fromprocess"
        assert c.feishu_root_token == "rootfile"

    def test_dotenv_in_working_directory_loaded(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("FEISHU_APP_ID=from_cwd_env\n", encoding="utf-8")
        clean_env.chdir(tmp_path)

        assert MdBridgeConfig.from_env().feishu_app_id == "from_cwd_env"

    def test_overrides_win_and_none_ignored(self, clean_env, tmp_path):
        clean_env.setenv("MDBRIDGE_FILES_DIR", "docs")
        c = MdBridgeConfig.from_env(tmp_path / "absent.env", files_dir="other", ledger_path=None)
        assert c.files_dir == "other"
        assert c.ledger_path is None

    def test_blank_values_ignored(self, clean_env, tmp_path):
        clean_env.setenv("MDBRIDGE_RENDERER", "   ")
        assert MdBridgeConfig.from_env(tmp_path / "absent.env").renderer_command == "mmdc"


class TestRequire:
    def test_lists_every_missing_field(self):
        c = MdBridgeConfig(feishu_app_id="x")
        with pytest.raises(MdBridgeConfigError) as exc_info:
            c.require(*FEISHU_UPLOAD_FIELDS)
        err = exc_info.value
        assert err.code == ErrorCode.CONFIG_ERROR
        assert err.context["missing"] == [f for f in FEISHU_UPLOAD_FIELDS if f != "feishu_app_id"]
        assert "FEISHU_APP_SECRET" in err.message

    def test_complete(self, config):
        config.require(*FEISHU_UPLOAD_FIELDS)
        config.require(*NOTION_UPLOAD_FIELDS)


class TestAccessors:
    def test_wiki_url(self, config):
        assert config.wiki_url("tok") == "https://acme.feishu.cn/wiki/tok"

    def test_explicit_ledger_path(self):
        assert MdBridgeConfig(ledger_path="/tmp/l.json").resolved_ledger_path == Path("/tmp/l.json")

    def test_secrets(self, config):
        assert sorted(config.secrets()) == ["feishu-secret-5678", "secret_notion_1234"]

    def test_repr_masks_secrets(self, config):
        text = repr(config)
        assert "feishu-secret-5678" not in text
        assert "secret_notion_1234" not in text
        assert "...5678" in text
