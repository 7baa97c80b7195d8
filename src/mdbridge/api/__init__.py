"""mdbridge.api -- platform transports and endpoint wrappers.

* :mod:`.rate_limit` -- async token bucket used for request pacing.
* :mod:`.transport` -- Feishu and Notion HTTP transports with typed errors.
* :mod:`.feishu` -- wiki, docx, drive and bitable wrappers.
* :mod:`.notion` -- page, block and file-upload wrappers.
"""

from __future__ import annotations

from .feishu import FeishuBitableAPI, FeishuDocxAPI, FeishuDriveAPI, FeishuWikiAPI
from .notion import BlockAPI, FileAPI, PageAPI
from .rate_limit import AsyncTokenBucket
from .transport import FeishuTransport, NotionTransport

__all__ = [
    "AsyncTokenBucket",
    "BlockAPI",
    "FeishuBitableAPI",
    "FeishuDocxAPI",
    "FeishuDriveAPI",
    "FeishuTransport",
    "FeishuWikiAPI",
    "FileAPI",
    "NotionTransport",
    "PageAPI",
]
