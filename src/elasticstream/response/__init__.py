"""响应解码模块.

主要组件:
    - decode_response: 读取响应字节，错误状态码抛出 ResponseError
    - release_response: 释放响应体
    - closing_response: 释放响应体的上下文管理器
"""

from .exceptions import ResponseError
from .tool import closing_response, decode_response, read_body, release_response

__all__ = [
    "ResponseError",
    "closing_response",
    "decode_response",
    "read_body",
    "release_response",
]
