"""Scroll 会话核心工具模块.

使用 scroll API 穷尽遍历查询结果，不受 index.max_result_window 限制：
打开 scroll -> 逐页获取并交给处理函数 -> 无更多数据时结束 -> 清除服务端游标。

每次 scroll 相关请求的 keep-alive 时长都会加上一个单调递增的计数器（毫秒），
使相邻请求的参数各不相同，避免中间缓存层将其视为相同请求。
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from urllib.parse import quote

from ..connection.tool import RetryingConnection
from ..response.exceptions import ResponseError
from ..response.tool import closing_response, decode_response, read_body
from ..typing import PageHandler, QueryBody
from .exceptions import ScrollProtocolError
from .models import ScrollPage, ScrollSettings, ScrollState, ScrollStats

JSON_HEADERS = {"accept": "application/json", "content-type": "application/json"}


class ScrollCounter:
    """线程安全的单调递增计数器.

    同一客户端上的所有 scroll 会话共享一个计数器，计数器从不重置。
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        """计数器加一并返回新值."""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        """当前计数值."""
        with self._lock:
            return self._value


def encode_query_body(body: QueryBody) -> bytes:
    """将查询体统一编码为字节."""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, Mapping):
        return json.dumps(body, ensure_ascii=False).encode("utf-8")
    raise TypeError(f"不支持的查询体类型: {type(body).__name__}")


def parse_page(page_bytes: bytes) -> ScrollPage:
    """解析一页 scroll 响应，提取游标和命中数.

    Args:
        page_bytes: 响应原始字节

    Returns:
        ScrollPage 实例

    Raises:
        ScrollProtocolError: 响应不是合法 JSON 或缺少 hits.hits 时抛出
    """
    try:
        data = json.loads(page_bytes)
    except ValueError as e:
        raise ScrollProtocolError(f"scroll 响应不是合法的 JSON: {str(e)}") from e

    if not isinstance(data, dict):
        raise ScrollProtocolError("scroll 响应格式错误: 顶层不是对象")

    hits_info = data.get("hits")
    if not isinstance(hits_info, dict) or not isinstance(hits_info.get("hits"), list):
        raise ScrollProtocolError("scroll 响应缺少 hits.hits 字段")

    # ES 7+ 的 total 为 {"value": n, "relation": "eq"}，旧版本为整数
    total = hits_info.get("total")
    if isinstance(total, dict):
        total = total.get("value")

    scroll_id = data.get("_scroll_id") or ""
    if not isinstance(scroll_id, str):
        raise ScrollProtocolError(f"非法的 scroll 游标: {scroll_id!r}")

    return ScrollPage(
        scroll_id=scroll_id,
        hit_count=len(hits_info["hits"]),
        total_hits=total if isinstance(total, int) else None,
    )


class ScrollSession:
    """单次 scroll 遍历会话.

    会话是单线程顺序执行的：同一时间只有一页在请求中，处理函数同步执行完成后
    才会请求下一页。会话只能运行一次，结束后游标不会再被使用。

    无论正常结束还是失败，只要拿到了游标都会尝试清除一次。清除失败只记录
    WARNING 日志，不会覆盖会话本身的结果；服务端返回 404 视为已清除。

    Args:
        connection: 带重试的连接
        counter: 客户端共享的 scroll 计数器
        settings: 分页策略，默认 ScrollSettings()
        logger: 日志记录器，默认使用模块日志记录器
        sleep: 等待函数，默认 time.sleep

    Examples:
        >>> session = ScrollSession(connection, ScrollCounter())
        >>> stats = session.run("users", {"query": {"match_all": {}}}, handle_page)
        >>> print(stats.pages, stats.hits)
    """

    def __init__(
        self,
        connection: RetryingConnection,
        counter: ScrollCounter,
        settings: ScrollSettings | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.connection = connection
        self.counter = counter
        self.settings = settings or ScrollSettings()
        self.state = ScrollState.OPENING
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._scroll_id: str | None = None

    def _keep_alive(self, base_ms: int) -> str:
        """计算本次请求的 keep-alive 参数，并递增计数器."""
        return f"{base_ms + self.counter.next()}ms"

    def _open(self, index: str, body: bytes, timeout: float | None) -> bytes:
        """发送初始搜索请求并打开 scroll."""
        response = self.connection.perform_request(
            "POST",
            f"/{quote(index, safe=',*')}/_search",
            params={
                "scroll": self._keep_alive(self.settings.open_keep_alive_ms),
                "size": self.settings.page_size,
            },
            headers=JSON_HEADERS,
            body=body,
            timeout=timeout,
        )
        return decode_response(response)

    def _next_page(self, timeout: float | None) -> bytes:
        """使用当前游标获取下一页."""
        payload = {
            "scroll": self._keep_alive(self.settings.continue_keep_alive_ms),
            "scroll_id": self._scroll_id,
        }
        response = self.connection.perform_request(
            "POST",
            "/_search/scroll",
            headers=JSON_HEADERS,
            body=json.dumps(payload).encode("utf-8"),
            timeout=timeout,
        )
        return decode_response(response)

    def _clear(self, timeout: float | None) -> None:
        """清除服务端游标，失败只记录警告."""
        scroll_id, self._scroll_id = self._scroll_id, None
        if not scroll_id:
            return

        try:
            response = self.connection.perform_request(
                "DELETE",
                "/_search/scroll",
                headers=JSON_HEADERS,
                body=json.dumps({"scroll_id": [scroll_id]}).encode("utf-8"),
                timeout=timeout,
            )
            with closing_response(response):
                # 404 表示游标已过期或已被清除
                if response.is_error() and response.status != 404:
                    raise ResponseError.from_response(response, read_body(response))
        except Exception as e:
            self._logger.warning(f"cannot clear scroll: {str(e)}")

    def run(
        self,
        index: str,
        body: QueryBody,
        handler: PageHandler,
        timeout: float | None = None,
    ) -> ScrollStats:
        """遍历查询的全部结果，逐页交给处理函数.

        Args:
            index: 索引名称（支持逗号分隔和通配符）
            body: 查询体
            handler: 页面处理函数，参数为一页响应的原始字节
            timeout: 每次请求的超时时间（秒）

        Returns:
            会话统计信息

        Raises:
            ScrollProtocolError: 响应格式错误或会话被重复运行时抛出
            TransportError: 与服务端通信失败时抛出
            Exception: 处理函数抛出的异常原样向上传播
        """
        if self.state is not ScrollState.OPENING:
            raise ScrollProtocolError(
                f"scroll 会话只能运行一次，当前状态: {self.state.value}"
            )

        stats = ScrollStats(index=index)
        try:
            page_bytes = self._open(index, encode_query_body(body), timeout)
            page = parse_page(page_bytes)
            stats.total_hits = page.total_hits
            if not page.scroll_id:
                # 没有游标时只交付首页，不翻页也不清除
                if page.hit_count > 0:
                    handler(page_bytes)
                    stats.pages += 1
                    stats.hits += page.hit_count
                self._logger.info(f"索引 '{index}' 未返回 scroll 游标，跳过遍历")
                self.state = ScrollState.CLOSED
                return stats

            self._scroll_id = page.scroll_id
            self.state = ScrollState.PAGING
            self._logger.info(
                f"打开 scroll: index={index}, total_hits={page.total_hits}"
            )

            while page.hit_count > 0:
                handler(page_bytes)
                stats.pages += 1
                stats.hits += page.hit_count
                self._logger.debug(
                    f"scroll 第 {stats.pages} 页处理完成: hits={page.hit_count}"
                )

                self._sleep(self.settings.page_delay)
                page_bytes = self._next_page(timeout)
                page = parse_page(page_bytes)
                # 服务端可能在翻页时返回新的游标
                if page.scroll_id:
                    self._scroll_id = page.scroll_id

            self.state = ScrollState.DRAINING
        except Exception:
            self.state = ScrollState.FAILED
            raise
        finally:
            self._clear(timeout)
            if self.state is ScrollState.DRAINING:
                self.state = ScrollState.CLOSED
            stats.state = self.state

        self._logger.info(
            f"scroll 遍历完成: index={index}, pages={stats.pages}, hits={stats.hits}"
        )
        return stats
