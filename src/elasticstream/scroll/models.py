"""Scroll 会话数据模型定义模块."""

from dataclasses import dataclass
from enum import Enum


class ScrollState(Enum):
    """Scroll 会话状态枚举.

    状态流转: OPENING -> PAGING -> DRAINING -> CLOSED，
    任意非终止状态都可能进入 FAILED。
    """

    OPENING = "opening"
    PAGING = "paging"
    DRAINING = "draining"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class ScrollSettings:
    """Scroll 分页策略.

    Attributes:
        page_size: 每页文档数，默认 9000
        open_keep_alive_ms: 打开 scroll 时的上下文保持时长（毫秒），默认 10 分钟
        continue_keep_alive_ms: 翻页时的上下文保持时长（毫秒），默认 2 分钟
        page_delay: 两次翻页之间的等待时间（秒），默认 0.5
    """

    page_size: int = 9000
    open_keep_alive_ms: int = 10 * 60 * 1000
    continue_keep_alive_ms: int = 2 * 60 * 1000
    page_delay: float = 0.5


@dataclass(frozen=True)
class ScrollPage:
    """一页 scroll 响应的解析结果.

    Attributes:
        scroll_id: 服务端返回的游标，缺失时为空字符串
        hit_count: 本页命中文档数
        total_hits: 查询命中总数，服务端未返回时为 None
    """

    scroll_id: str
    hit_count: int
    total_hits: int | None = None


@dataclass
class ScrollStats:
    """Scroll 会话统计信息.

    Attributes:
        index: 索引名称
        pages: 交给处理函数的页数
        hits: 交给处理函数的文档总数
        total_hits: 查询命中总数
        state: 会话最终状态
    """

    index: str
    pages: int = 0
    hits: int = 0
    total_hits: int | None = None
    state: ScrollState = ScrollState.OPENING
