"""Scroll 会话模块 - 基于 scroll API 穷尽遍历查询结果.

使用示例:
    >>> from elasticstream.scroll import ScrollCounter, ScrollSession
    >>> session = ScrollSession(connection, ScrollCounter())
    >>> stats = session.run("users", {"query": {"match_all": {}}}, print)
"""

from .exceptions import ScrollProtocolError
from .models import ScrollPage, ScrollSettings, ScrollState, ScrollStats
from .tool import ScrollCounter, ScrollSession, encode_query_body, parse_page

__all__ = [
    "ScrollCounter",
    "ScrollSession",
    "ScrollPage",
    "ScrollSettings",
    "ScrollState",
    "ScrollStats",
    "ScrollProtocolError",
    "encode_query_body",
    "parse_page",
]
