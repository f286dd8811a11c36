"""
muc.core.logging
~~~~~~~~~~~~~~~~

日志配置。级别由 ``settings.effective_log_level`` 决定，
slixmpp 的 XML 流日志单独受 ``XMPP_DEBUG`` 控制。
"""
from __future__ import annotations

import logging
import sys

from muc.core.config import settings

_LOG_FORMAT: str = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> None:
    """配置根 logger。应用启动时调用一次。"""
    logging.basicConfig(
        level=getattr(logging, settings.effective_log_level.upper(), logging.INFO),
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    # DEBUG 级别下 slixmpp 会逐条打印收发的 XML
    logging.getLogger("slixmpp").setLevel(
        logging.DEBUG if settings.XMPP_DEBUG else logging.WARNING,
    )


def get_logger(name: str) -> logging.Logger:
    """按模块名获取 logger，调用方传 ``__name__``。"""
    return logging.getLogger(name)
