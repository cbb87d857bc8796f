"""批量写入模块.

该模块提供 Elasticsearch _bulk 接口的写入功能，并区分两层错误：
- TransportError: 整个批次未能写入（网络失败或错误状态码）
- BulkItemError: 服务端接受了批次，但部分文档被拒绝

示例用法:
    >>> from elasticstream.bulk import BulkAction, BulkOperation, BulkWriter
    >>> from elasticstream.bulk import encode_bulk_payload
    >>> payload = encode_bulk_payload(
    ...     [BulkOperation(action=BulkAction.INDEX, doc_id="1", source={"name": "Alice"})]
    ... )
    >>> result = BulkWriter(connection).write(payload, "users")
"""

from .exceptions import (
    BulkItemError,
    BulkOperationError,
    BulkResponseParseError,
    BulkValidationError,
)
from .models import BulkAction, BulkErrorItem, BulkOperation, BulkResult
from .tool import BulkWriter, encode_bulk_payload

__all__ = [
    "BulkAction",
    "BulkErrorItem",
    "BulkOperation",
    "BulkResult",
    "BulkWriter",
    "encode_bulk_payload",
    "BulkItemError",
    "BulkOperationError",
    "BulkResponseParseError",
    "BulkValidationError",
]
