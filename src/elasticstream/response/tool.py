"""响应解码工具模块.

从 HTTP 响应中提取原始字节并区分成功与错误；
所有代码路径（成功、错误、提前返回）都会释放响应体，使底层连接归还连接池。
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from .exceptions import ResponseError

if TYPE_CHECKING:
    from ..connection.transport import HttpResponse

logger = logging.getLogger(__name__)


def release_response(response: HttpResponse | None) -> None:
    """释放响应体，容忍 response 或 body 为 None."""
    if response is None or response.body is None:
        return
    response.close()


@contextmanager
def closing_response(response: HttpResponse | None) -> Iterator[HttpResponse | None]:
    """在代码块退出时释放响应体的上下文管理器.

    Examples:
        >>> with closing_response(response) as res:
        ...     if res.is_error():
        ...         return
    """
    try:
        yield response
    finally:
        release_response(response)


def read_body(response: HttpResponse) -> bytes:
    """读取完整响应体，body 为 None 时返回空字节."""
    if response.body is None:
        return b""
    return response.body.read()


def decode_response(response: HttpResponse) -> bytes:
    """读取响应的全部字节.

    解码器不关心响应格式，调用方自行解析返回的字节。

    Args:
        response: HTTP 响应

    Returns:
        完整响应体字节

    Raises:
        ResponseError: 当响应为错误状态码时抛出，响应体同样会被释放
    """
    with closing_response(response):
        body = read_body(response)
        if response.is_error():
            logger.debug(f"收到错误响应: {response}")
            raise ResponseError.from_response(response, body)
        return body
