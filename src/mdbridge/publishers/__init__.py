"""Platform publishers: one async client and block sink per target."""

from __future__ import annotations

from .feishu import FeishuBlockSink, FeishuPublisher
from .notion import NotionBlockSink, NotionPublisher, prepare_blocks

__all__ = [
    "FeishuBlockSink",
    "FeishuPublisher",
    "NotionBlockSink",
    "NotionPublisher",
    "prepare_blocks",
]
