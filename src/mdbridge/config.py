"""Run configuration for mdbridge.

:class:`MdBridgeConfig` is a dataclass that captures every tuneable knob:
platform credentials and identifiers, batch sizes, fixed rate-limit delays,
HTTP settings and conversion options.  :meth:`MdBridgeConfig.from_env`
builds one from the process environment after loading an optional ``.env``
file.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from dotenv import find_dotenv, load_dotenv

from mdbridge.errors import MdBridgeConfigError

# Environment variable -> config field.
ENV_FIELDS: dict[str, str] = {
    "FEISHU_APP_ID": "feishu_app_id",
    "FEISHU_APP_SECRET": "feishu_app_secret",
    "FEISHU_WIKI_SPACE_ID": "feishu_wiki_space_id",
    "FEISHU_ROOT_TOKEN": "feishu_root_token",
    "FEISHU_DOMAIN_NAME": "feishu_domain_name",
    "FEISHU_APP_TOKEN": "feishu_app_token",
    "FEISHU_TABLE_ID": "feishu_table_id",
    "NOTION_INTEGRATION_TOKEN": "notion_token",
    "NOTION_PARENT_PAGE_ID": "notion_parent_page_id",
    "MDBRIDGE_FILES_DIR": "files_dir",
    "MDBRIDGE_RENDERER": "renderer_command",
}

_SECRET_FIELDS: frozenset[str] = frozenset({"feishu_app_secret", "notion_token"})

# Credentials each command needs before any remote call is made.
FEISHU_UPLOAD_FIELDS: tuple[str, ...] = (
    "feishu_app_id",
    "feishu_app_secret",
    "feishu_wiki_space_id",
    "feishu_root_token",
    "feishu_domain_name",
)
FEISHU_STATS_FIELDS: tuple[str, ...] = FEISHU_UPLOAD_FIELDS
NOTION_UPLOAD_FIELDS: tuple[str, ...] = ("notion_token", "notion_parent_page_id")


@dataclass
class MdBridgeConfig:
    """Complete configuration for one mdbridge run.

    Parameters
    ----------
    feishu_app_id, feishu_app_secret:
        Credentials of the Feishu self-built app, exchanged for a tenant
        access token.  The secret is never logged.
    feishu_wiki_space_id:
        Wiki space that holds the published documents.
    feishu_root_token:
        Node token of the root under which one parent node per source file
        is created, and from which likes/comments are aggregated.
    feishu_domain_name:
        Tenant sub-domain used to build ``https://<domain>.feishu.cn/wiki/``
        links.
    feishu_app_token, feishu_table_id:
        Optional bitable index updated after each wiki upload.
    notion_token:
        Notion integration token.  Never logged.
    notion_parent_page_id:
        Page under which one Notion page per source file is created.
    notion_version:
        Value of the ``Notion-Version`` header.
    files_dir:
        Directory enumerated for ``*.md`` files.
    ledger_path:
        Metadata ledger location.  Defaults to ``<files_dir>/metadata.json``.
    renderer_command, renderer_args, renderer_timeout:
        External diagram renderer invoked as
        ``<command> -i <source> -o <png> <args...>``.
    feishu_batch_size, notion_batch_size:
        Blocks per append request on each platform.
    paragraph_span_limit:
        Notion accepts at most this many rich-text spans per paragraph;
        longer paragraphs are split.
    page_size:
        Page size for every paginated listing.
    batch_delay, page_delay, node_delay, document_delay:
        Fixed pauses (seconds) between append batches, between pages of a
        listing, between sibling metric fetches, and between documents.
    rate_limit_rps:
        Target requests per second for client-side pacing (token bucket).
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    heading_overflow:
        Notion only supports three heading levels.

        * ``"downgrade"`` -- clamp levels 4-6 to ``heading_3``.
        * ``"paragraph"`` -- render them as bold paragraphs.
    table_of_contents:
        Prefix Notion pages with divider / table of contents / divider.
    link_citations:
        Link ``[n]`` citations in Notion paragraphs to the ``## References``
        section.
    debug_dump_payload:
        Write redacted request/response bodies to *stderr*.
    metrics:
        Optional :class:`~mdbridge.observability.MetricsHook`.
    """

    # ── Feishu ──────────────────────────────────────────────────────────
    feishu_app_id: str = ""

    feishu_app_secret: str = ""

    feishu_wiki_space_id: str = ""

    feishu_root_token: str = ""

    feishu_domain_name: str = ""

    feishu_app_token: str = ""

    feishu_table_id: str = ""

    feishu_base_url: str = "https://open.feishu.cn/open-apis"

    # ── Notion ──────────────────────────────────────────────────────────
    notion_token: str = ""

    notion_parent_page_id: str = ""

    notion_version: str = "2022-06-28"

    notion_base_url: str = "https://api.notion.com/v1"

    # ── Files ───────────────────────────────────────────────────────────
    files_dir: str = "./files"

    ledger_path: str | None = None

    # ── Diagram renderer ───────────────────────────────────────────────
    renderer_command: str = "mmdc"

    renderer_args: list[str] = field(default_factory=list)

    renderer_timeout: float = 60.0

    # ── Batching & pacing ──────────────────────────────────────────────
    feishu_batch_size: int = 50

    notion_batch_size: int = 100

    paragraph_span_limit: int = 100

    page_size: int = 50

    batch_delay: float = 0.2

    page_delay: float = 0.2

    node_delay: float = 0.2

    document_delay: float = 1.0

    rate_limit_rps: float = 5.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Notion conversion ──────────────────────────────────────────────
    heading_overflow: Literal["downgrade", "paragraph"] = "downgrade"

    table_of_contents: bool = True

    link_citations: bool = True

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate numeric settings at construction time."""
        for name in ("feishu_batch_size", "notion_batch_size", "paragraph_span_limit", "page_size"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")
        for name in ("batch_delay", "page_delay", "node_delay", "document_delay"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.renderer_timeout <= 0:
            raise ValueError(f"renderer_timeout must be > 0, got {self.renderer_timeout}")
        if self.heading_overflow not in ("downgrade", "paragraph"):
            raise ValueError(f"heading_overflow must be 'downgrade' or 'paragraph', got {self.heading_overflow!r}")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(
        cls,
        env_file: str | Path | None = None,
        **overrides: Any,
    ) -> MdBridgeConfig:
        """Build a config from environment variables.

        A ``.env`` file (``env_file``, or the nearest ``.env`` found from the
        current working directory upwards) is loaded first without
        overriding variables already set in the process.  Explicit keyword
        *overrides* win over the environment.
        """
        dotenv_path = env_file or find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
        values: dict[str, Any] = {}
        for env_name, field_name in ENV_FIELDS.items():
            raw = (os.environ.get(env_name) or "").strip()
            if raw:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def require(self, *names: str) -> None:
        """Raise :class:`MdBridgeConfigError` if any of *names* is empty."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            env_names = [env for env, f in ENV_FIELDS.items() if f in missing]
            raise MdBridgeConfigError(
                message=f"Missing required configuration: {', '.join(env_names or missing)}",
                context={"missing": missing},
            )

    @property
    def resolved_ledger_path(self) -> Path:
        if self.ledger_path:
            return Path(self.ledger_path)
        return Path(self.files_dir) / "metadata.json"

    def wiki_url(self, node_token: str) -> str:
        """Public URL of a wiki node."""
        return f"https://{self.feishu_domain_name}.feishu.cn/wiki/{node_token}"

    def secrets(self) -> list[str]:
        """Secret values that must never appear in logs or dumps."""
        return [getattr(self, name) for name in sorted(_SECRET_FIELDS) if getattr(self, name)]

    def __repr__(self) -> str:
        """Mask secrets to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name in _SECRET_FIELDS:
                masked = f"...{val[-4:]}" if len(val) >= 8 else "****"
                parts.append(f"{f.name}='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"MdBridgeConfig({', '.join(parts)})"
