"""连接管理工具模块.

提供 RetryingConnection 类和 create_connection 工厂函数，
在传输层之上实现按状态码重试与指数退避。

使用示例:
    from elasticstream.connection import ClientConfig, create_connection

    connection = create_connection(ClientConfig(url="http://localhost:9200"))
    response = connection.perform_request("GET", "/_cluster/health")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping

from ..exceptions import TransportError
from ..response.tool import release_response
from ..typing import ParamsDict
from .models import ClientConfig
from .transport import ElasticsearchTransport, HttpResponse, Transport


class RetryingConnection:
    """带自动重试的连接.

    当响应状态码在 retry_on_status 中（或发生网络层失败且允许重试）时，
    按退避函数等待后重新发送请求，最多重试 max_retries 次。
    每次重试都会输出一条 INFO 日志，包含重试序号和等待时长。

    重试耗尽后返回最后一次的响应（状态码错误）或重新抛出最后一次的异常（网络层失败），
    由上层决定如何处理。

    Attributes:
        config: 客户端配置
        transport: 传输层实例
    """

    def __init__(
        self,
        transport: Transport,
        config: ClientConfig,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    def _wait_before_retry(self, attempt: int, reason: str) -> None:
        """计算退避时长、记录日志并等待."""
        delay = self.config.backoff(attempt)
        self._logger.info(
            f"elastic: retry backoff, attempt={attempt}, "
            f"sleep duration={delay}s, reason={reason}"
        )
        self._sleep(delay)

    def perform_request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsDict | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """发送请求，按配置的策略自动重试.

        Args:
            method: HTTP 方法
            path: 请求路径
            params: 查询参数
            headers: 请求头
            body: 已编码的请求体
            timeout: 本次请求的超时时间（秒）

        Returns:
            HTTP 响应，调用方负责释放响应体

        Raises:
            TransportError: 网络层失败且重试耗尽（或不允许重试）时抛出
        """
        attempt = 0
        while True:
            try:
                response = self.transport.perform_request(
                    method,
                    path,
                    params=params,
                    headers=headers,
                    body=body,
                    timeout=timeout,
                )
            except TransportError as e:
                if (
                    not self.config.retry_on_connection_error
                    or attempt >= self.config.max_retries
                ):
                    raise
                self._wait_before_retry(attempt, reason=str(e))
                attempt += 1
                continue

            if (
                not self.config.is_retryable_status(response.status)
                or attempt >= self.config.max_retries
            ):
                return response

            # 丢弃本次响应，归还连接后再重试
            release_response(response)
            self._wait_before_retry(attempt, reason=f"status {response.status}")
            attempt += 1

    def close(self) -> None:
        """关闭传输层."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()


def create_connection(
    config: ClientConfig,
    transport: Transport | None = None,
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryingConnection:
    """根据配置创建带重试的连接.

    构建过程不发生任何网络请求。

    Args:
        config: 客户端配置
        transport: 自定义传输层，默认基于 elasticsearch.Elasticsearch 创建
        logger: 日志记录器，默认使用模块日志记录器
        sleep: 等待函数，默认 time.sleep

    Returns:
        RetryingConnection 实例

    Raises:
        ClientConnectionError: 当底层客户端无法创建时抛出
    """
    if transport is None:
        transport = ElasticsearchTransport.from_config(config)
    return RetryingConnection(transport, config, logger=logger, sleep=sleep)
