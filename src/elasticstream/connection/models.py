"""连接管理数据模型定义模块.

提供连接管理相关的数据模型和退避策略，包括：
- ClientConfig: 客户端配置
- exponential_backoff: 默认指数退避函数
- jittered_backoff: 带随机抖动的指数退避函数
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from ..typing import BackoffFunc
from .exceptions import ConnectionConfigError

# 触发自动重试的 HTTP 状态码
DEFAULT_RETRY_ON_STATUS: tuple[int, ...] = (429, 502, 503, 504)

# 默认最大重试次数
DEFAULT_MAX_RETRIES = 5


def exponential_backoff(attempt: int) -> float:
    """指数退避：第 attempt 次重试前等待 2^attempt 秒.

    不带抖动，相同的 attempt 总是得到相同的结果。

    Args:
        attempt: 重试序号，从 0 开始

    Returns:
        等待秒数
    """
    return float(2**attempt)


def jittered_backoff(attempt: int, jitter: float = 0.5) -> float:
    """带抖动的指数退避.

    在 2^attempt 的基础上增加 [0, jitter * 2^attempt) 的随机延迟，
    适用于大量客户端同时重试的生产环境。

    Args:
        attempt: 重试序号，从 0 开始
        jitter: 抖动比例，默认 0.5

    Returns:
        等待秒数
    """
    base = exponential_backoff(attempt)
    return base + random.uniform(0, jitter * base)


@dataclass(frozen=True)
class ClientConfig:
    """客户端配置模型.

    定义 ES 实例的连接信息和传输层重试策略，客户端构建后不可修改。

    Attributes:
        url: ES 节点地址（必需）
        username: Basic Auth 用户名
        password: Basic Auth 密码
        api_key: API Key 认证（字符串或元组）
        ca_certs: CA 证书文件路径
        verify_certs: 是否验证 SSL 证书，默认 True
        request_timeout: 默认请求超时时间（秒），None 表示使用底层客户端默认值
        retry_on_status: 触发自动重试的状态码，默认 (429, 502, 503, 504)
        max_retries: 最大重试次数，默认 5
        backoff: 退避函数，参数为重试序号，返回等待秒数
        retry_on_connection_error: 网络层失败时是否重试，默认 True

    Raises:
        ConnectionConfigError: 当参数不合法时抛出

    Examples:
        >>> config = ClientConfig(
        ...     url="http://localhost:9200",
        ...     username="elastic",
        ...     password="changeme",
        ... )
    """

    url: str
    username: str | None = None
    password: str | None = None
    api_key: str | tuple[str, str] | None = None
    ca_certs: str | None = None
    verify_certs: bool = True
    request_timeout: float | None = None
    retry_on_status: tuple[int, ...] = DEFAULT_RETRY_ON_STATUS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff: BackoffFunc = exponential_backoff
    retry_on_connection_error: bool = True

    def __post_init__(self) -> None:
        """校验客户端配置参数合法性."""
        if not self.url:
            raise ConnectionConfigError("url 不能为空，请提供 ES 节点地址")
        if self.max_retries < 0:
            raise ConnectionConfigError(
                f"max_retries 必须 >= 0，当前值: {self.max_retries}"
            )
        if self.request_timeout is not None and self.request_timeout < 0:
            raise ConnectionConfigError(
                f"request_timeout 必须 >= 0，当前值: {self.request_timeout}"
            )
        if not callable(self.backoff):
            raise ConnectionConfigError("backoff 必须是可调用对象")
        for status in self.retry_on_status:
            if not 100 <= status <= 599:
                raise ConnectionConfigError(f"非法的重试状态码: {status}")
        # 允许传入 list，统一转为 tuple 保证不可变
        object.__setattr__(self, "retry_on_status", tuple(self.retry_on_status))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ClientConfig:
        """从普通字典构建配置，忽略未知字段.

        适用于从 toml/json 配置文件或环境变量加载的配置。

        Args:
            data: 配置字典

        Returns:
            ClientConfig 实例
        """
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}
        if "url" not in kwargs:
            raise ConnectionConfigError("配置中缺少 url 字段")
        return cls(**kwargs)

    def is_retryable_status(self, status: int) -> bool:
        """判断状态码是否触发自动重试."""
        return status in self.retry_on_status
