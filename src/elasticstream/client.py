"""elasticstream 客户端模块.

ElasticStreamClient 组合连接管理、scroll 会话和批量写入，是调用方的统一入口。

使用示例:
    from elasticstream import ClientConfig, ElasticStreamClient

    with ElasticStreamClient(ClientConfig(url="http://localhost:9200")) as client:
        client.scroll_all_documents("users", {"query": {"match_all": {}}}, handle)
        client.bulk_write(payload, "users-copy")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .bulk.models import BulkResult
from .bulk.tool import BulkWriter
from .connection.models import ClientConfig
from .connection.tool import RetryingConnection, create_connection
from .connection.transport import Transport
from .scroll.models import ScrollSettings, ScrollStats
from .scroll.tool import ScrollCounter, ScrollSession
from .typing import BulkPayload, PageHandler, QueryBody


class ElasticStreamClient:
    """批量导出与写入客户端.

    每个进程（或逻辑会话）创建一次。客户端唯一的可变状态是 scroll 计数器，
    计数器由锁保护，因此多个 scroll 会话和批量写入可以在不同线程中并发使用同一客户端；
    单个 scroll 会话本身只能顺序执行。

    Args:
        config: 客户端配置
        transport: 自定义传输层，默认基于 elasticsearch.Elasticsearch 创建
        scroll_settings: scroll 分页策略，默认 ScrollSettings()
        logger: 日志记录器，传给连接、scroll 会话和批量写入
        sleep: 等待函数，用于重试退避和翻页间隔，默认 time.sleep

    Raises:
        ClientConnectionError: 当底层客户端无法创建时抛出
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport | None = None,
        scroll_settings: ScrollSettings | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.scroll_settings = scroll_settings or ScrollSettings()
        self._logger = logger
        self._sleep = sleep
        self._connection = create_connection(
            config, transport=transport, logger=logger, sleep=sleep
        )
        self._scroll_counter = ScrollCounter()
        self._bulk_writer = BulkWriter(self._connection, logger=logger)

    @property
    def connection(self) -> RetryingConnection:
        return self._connection

    @property
    def scroll_counter(self) -> ScrollCounter:
        return self._scroll_counter

    def scroll_all_documents(
        self,
        index: str,
        body: QueryBody,
        handler: PageHandler,
        timeout: float | None = None,
    ) -> ScrollStats:
        """使用 scroll API 遍历查询的全部文档.

        Args:
            index: 索引名称
            body: 查询体
            handler: 页面处理函数，参数为一页响应的原始字节
            timeout: 每次请求的超时时间（秒）

        Returns:
            会话统计信息
        """
        session = ScrollSession(
            self._connection,
            self._scroll_counter,
            settings=self.scroll_settings,
            logger=self._logger,
            sleep=self._sleep,
        )
        return session.run(index, body, handler, timeout=timeout)

    def bulk_write(
        self,
        payload: BulkPayload,
        index: str,
        timeout: float | None = None,
    ) -> BulkResult:
        """将 NDJSON 载荷批量写入指定索引.

        Args:
            payload: NDJSON 载荷
            index: 目标索引名称
            timeout: 请求超时时间（秒）

        Returns:
            全部成功时的批量写入结果
        """
        return self._bulk_writer.write(payload, index, timeout=timeout)

    # ============================================================
    # 生命周期管理
    # ============================================================

    def close(self) -> None:
        """关闭底层连接池."""
        self._connection.close()

    def __enter__(self) -> ElasticStreamClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
