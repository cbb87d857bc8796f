"""响应解码异常定义模块."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..exceptions import TransportError

if TYPE_CHECKING:
    from ..connection.transport import HttpResponse


class ResponseError(TransportError):
    """错误状态码响应异常.

    携带完整的响应表示（状态码 + 响应体），便于诊断。
    """

    @classmethod
    def from_response(cls, response: HttpResponse, body: bytes) -> ResponseError:
        """根据错误响应构建异常."""
        text = body.decode("utf-8", errors="replace")
        return cls(f"错误响应: {response} {text}", status=response.status, body=body)
