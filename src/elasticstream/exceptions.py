"""elasticstream 异常定义模块."""


class ElasticStreamError(Exception):
    """elasticstream 基础异常类."""

    pass


class TransportError(ElasticStreamError):
    """与 ES 服务端通信失败的异常.

    包括网络层失败（连接被拒绝、超时）以及重试耗尽后仍为错误状态码的响应。

    Attributes:
        status: HTTP 状态码，网络层失败时为 None
        body: 响应体原始字节，不可用时为 None
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body

