"""Scroll 会话异常定义模块."""

from ..exceptions import ElasticStreamError


class ScrollProtocolError(ElasticStreamError):
    """Scroll 协议异常.

    当 scroll 响应无法解析、缺少 hits 字段或会话被重复使用时抛出。
    """

    pass
