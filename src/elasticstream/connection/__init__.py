"""连接管理模块 - 创建带自动重试与指数退避策略的 ES 连接.

主要组件:
    - ClientConfig: 客户端配置模型
    - RetryingConnection: 带重试的连接
    - create_connection: 连接工厂函数
    - ElasticsearchTransport: 基于 elasticsearch 客户端的传输层
    - HttpResponse: HTTP 响应模型

使用示例:
    from elasticstream.connection import ClientConfig, create_connection

    connection = create_connection(ClientConfig(url="http://localhost:9200"))
"""

from .exceptions import ClientConnectionError, ConnectionConfigError
from .models import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_ON_STATUS,
    ClientConfig,
    exponential_backoff,
    jittered_backoff,
)
from .tool import RetryingConnection, create_connection
from .transport import ElasticsearchTransport, HttpResponse, Transport

__all__ = [
    # 连接
    "RetryingConnection",
    "create_connection",
    # 传输层
    "ElasticsearchTransport",
    "HttpResponse",
    "Transport",
    # 模型
    "ClientConfig",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_ON_STATUS",
    "exponential_backoff",
    "jittered_backoff",
    # 异常
    "ClientConnectionError",
    "ConnectionConfigError",
]
