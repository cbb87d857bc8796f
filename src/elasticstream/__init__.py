"""elasticstream - Elasticsearch 批量导出与写入客户端.

这是一个面向大规模数据导出与写入的 Elasticsearch 客户端层。

主要功能:
    - 连接管理: 按状态码自动重试，指数退避
    - Scroll 会话: 穷尽遍历查询结果，结束后清除服务端游标
    - 批量写入: 区分整个批次失败与部分文档失败

使用示例:
    from elasticstream import ClientConfig, ElasticStreamClient

    client = ElasticStreamClient(ClientConfig(url="http://localhost:9200"))
    stats = client.scroll_all_documents(
        "users", {"query": {"match_all": {}}}, lambda page: print(len(page))
    )
"""

__version__ = "0.1.0"

# 导出批量写入
from elasticstream.bulk import (
    BulkAction,
    BulkErrorItem,
    BulkItemError,
    BulkOperation,
    BulkResult,
    BulkWriter,
    encode_bulk_payload,
)

# 导出客户端
from elasticstream.client import ElasticStreamClient

# 导出连接管理
from elasticstream.connection import (
    ClientConfig,
    ClientConnectionError,
    ConnectionConfigError,
    HttpResponse,
    RetryingConnection,
    create_connection,
    exponential_backoff,
    jittered_backoff,
)

# 导出异常
from elasticstream.exceptions import ElasticStreamError, TransportError
from elasticstream.response import ResponseError, decode_response, release_response

# 导出 scroll 会话
from elasticstream.scroll import (
    ScrollCounter,
    ScrollProtocolError,
    ScrollSession,
    ScrollSettings,
    ScrollState,
    ScrollStats,
)

__all__ = [
    # 版本
    "__version__",
    # 客户端
    "ElasticStreamClient",
    # 连接管理
    "ClientConfig",
    "HttpResponse",
    "RetryingConnection",
    "create_connection",
    "exponential_backoff",
    "jittered_backoff",
    # 响应解码
    "decode_response",
    "release_response",
    # Scroll 会话
    "ScrollCounter",
    "ScrollSession",
    "ScrollSettings",
    "ScrollState",
    "ScrollStats",
    # 批量写入
    "BulkAction",
    "BulkErrorItem",
    "BulkOperation",
    "BulkResult",
    "BulkWriter",
    "encode_bulk_payload",
    # 异常
    "ElasticStreamError",
    "TransportError",
    "ResponseError",
    "ClientConnectionError",
    "ConnectionConfigError",
    "ScrollProtocolError",
    "BulkItemError",
]
