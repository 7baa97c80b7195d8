"""``mdbridge`` command line entry point.

Commands::

    mdbridge feishu     Publish ./files/*.md into the Feishu wiki
    mdbridge notion     Publish unprocessed ./files/*.md as Notion pages
    mdbridge likes      Roll up likes under the wiki root into a JSON report
    mdbridge comments   Roll up comments under the wiki root into a JSON report

Exit status is 0 on success, 1 when the run aborted or any document failed,
and 2 when required configuration is missing.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from mdbridge import __version__
from mdbridge.config import (
    FEISHU_STATS_FIELDS,
    FEISHU_UPLOAD_FIELDS,
    NOTION_UPLOAD_FIELDS,
    MdBridgeConfig,
)
from mdbridge.errors import MdBridgeConfigError, MdBridgeError
from mdbridge.ledger import Ledger
from mdbridge.models import RunSummary
from mdbridge.observability import get_logger, set_level
from mdbridge.pipeline import (
    collect_comments,
    collect_likes,
    find_markdown_files,
    publish_to_feishu,
    publish_to_notion,
)

log = get_logger("mdbridge.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdbridge",
        description="Publish Markdown to Feishu wiki / Notion and collect document statistics.",
    )
    parser.add_argument("--version", action="version", version=f"mdbridge {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    common.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    files = argparse.ArgumentParser(add_help=False)
    files.add_argument("--files-dir", help="Directory holding the *.md sources (default: ./files)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("feishu", parents=[common, files], help="Publish Markdown files into the Feishu wiki")
    notion = sub.add_parser("notion", parents=[common, files], help="Publish Markdown files as Notion pages")
    notion.add_argument(
        "--reupload-changed",
        action="store_true",
        help="Re-upload files whose source changed since their recorded upload",
    )
    likes = sub.add_parser("likes", parents=[common], help="Aggregate likes per wiki node")
    likes.add_argument("-o", "--output", default="likes_stats.json", help="Report path")
    comments = sub.add_parser("comments", parents=[common], help="Aggregate comments per wiki node")
    comments.add_argument("-o", "--output", default="comments_stats.json", help="Report path")
    return parser


def _summary_exit(summary: RunSummary) -> int:
    for failure in summary.failures():
        print(f"failed: {failure.file}: {failure.error}", file=sys.stderr)
    print(
        f"{summary.processed} published, {summary.skipped} skipped, {summary.failed} failed",
        file=sys.stderr,
    )
    return EXIT_FAILED if summary.failed else EXIT_OK


async def _run(args: argparse.Namespace, config: MdBridgeConfig) -> int:
    if args.command == "feishu":
        config.require(*FEISHU_UPLOAD_FIELDS)
        files = find_markdown_files(config.files_dir)
        return _summary_exit(await publish_to_feishu(config, files))

    if args.command == "notion":
        config.require(*NOTION_UPLOAD_FIELDS)
        files = find_markdown_files(config.files_dir)
        ledger = Ledger.load(config.resolved_ledger_path)
        summary = await publish_to_notion(config, files, ledger, reupload_changed=args.reupload_changed)
        return _summary_exit(summary)

    config.require(*FEISHU_STATS_FIELDS)
    if args.command == "likes":
        results = await collect_likes(config, args.output)
    else:
        results = await collect_comments(config, args.output)
    print(f"{len(results)} nodes written to {args.output}", file=sys.stderr)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    set_level(args.log_level)

    try:
        config = MdBridgeConfig.from_env(args.env_file, files_dir=getattr(args, "files_dir", None))
    except ValueError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        return asyncio.run(_run(args, config))
    except MdBridgeConfigError as exc:
        print(f"configuration error: {exc.message}", file=sys.stderr)
        return EXIT_CONFIG
    except MdBridgeError as exc:
        log.error("Run aborted", extra={"extra_fields": {"code": exc.code, "error": exc.message}})
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
