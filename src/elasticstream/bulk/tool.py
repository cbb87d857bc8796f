"""批量写入核心工具模块."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterable
from urllib.parse import quote

from ..connection.tool import RetryingConnection
from ..response.tool import decode_response
from ..typing import BulkPayload
from .exceptions import BulkItemError, BulkResponseParseError, BulkValidationError
from .models import BulkAction, BulkOperation, BulkResult

NDJSON_HEADERS = {
    "accept": "application/json",
    "content-type": "application/x-ndjson",
}


def _dumps(data: dict) -> bytes:
    return json.dumps(data, ensure_ascii=False).encode("utf-8")


def encode_bulk_payload(operations: Iterable[BulkOperation]) -> bytes:
    """将批量操作项编码为 _bulk 接口所需的 NDJSON 载荷.

    Args:
        operations: 批量操作项

    Returns:
        NDJSON 字节，每行以换行符结尾

    Raises:
        BulkValidationError: 操作项缺少必需字段时抛出

    Example:
        >>> payload = encode_bulk_payload(
        ...     [BulkOperation(action=BulkAction.INDEX, doc_id="1", source={"a": 1})]
        ... )
    """
    buffer = io.BytesIO()
    for operation in operations:
        # 对于 UPSERT 操作，实际使用 update 作为底层操作类型
        op_type = operation.action.value
        if operation.action == BulkAction.UPSERT:
            op_type = "update"

        meta: dict = {}
        if operation.index_name is not None:
            meta["_index"] = operation.index_name
        if operation.doc_id is not None:
            meta["_id"] = operation.doc_id
        if operation.routing is not None:
            meta["routing"] = operation.routing
        if (
            operation.action in (BulkAction.UPDATE, BulkAction.UPSERT)
            and operation.retry_on_conflict is not None
        ):
            meta["retry_on_conflict"] = operation.retry_on_conflict

        if (
            operation.action not in (BulkAction.INDEX, BulkAction.CREATE)
            and operation.doc_id is None
        ):
            raise BulkValidationError(
                f"操作类型 {operation.action.value} 需要提供 doc_id"
            )
        if operation.action != BulkAction.DELETE and operation.source is None:
            raise BulkValidationError(
                f"操作类型 {operation.action.value} 需要提供 source 数据"
            )

        buffer.write(_dumps({op_type: meta}) + b"\n")
        if operation.action in (BulkAction.INDEX, BulkAction.CREATE):
            buffer.write(_dumps(operation.source) + b"\n")
        elif operation.action in (BulkAction.UPDATE, BulkAction.UPSERT):
            # update 操作使用 doc 字段而非 _source
            doc: dict = {"doc": operation.source}
            if operation.action == BulkAction.UPSERT:
                doc["doc_as_upsert"] = True
            buffer.write(_dumps(doc) + b"\n")
    return buffer.getvalue()


def _payload_to_bytes(payload: BulkPayload) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, bytearray):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, io.BytesIO):
        return payload.getvalue()
    return payload.read()


class BulkWriter:
    """批量写入工具类.

    发送一次 _bulk 请求并区分两层错误：
    - 整个批次未能到达服务端或被拒绝：抛出 TransportError（ResponseError），保留原始状态码
    - 服务端接受了批次（HTTP 200）但部分文档失败：抛出 BulkItemError，列出失败的文档

    本类不会自动重试失败的批次或文档，需要重试的调用方请自行处理。

    Args:
        connection: 带重试的连接
        logger: 日志记录器，默认使用模块日志记录器

    Examples:
        >>> writer = BulkWriter(connection)
        >>> result = writer.write(payload, "users")
        >>> print(result.total)
    """

    def __init__(
        self,
        connection: RetryingConnection,
        logger: logging.Logger | None = None,
    ) -> None:
        self.connection = connection
        self._logger = logger or logging.getLogger(__name__)

    def write(
        self,
        payload: BulkPayload,
        index: str,
        timeout: float | None = None,
    ) -> BulkResult:
        """将预先编码的 NDJSON 载荷写入指定索引.

        Args:
            payload: NDJSON 载荷（字节、字符串或内存缓冲区）
            index: 目标索引名称
            timeout: 请求超时时间（秒）

        Returns:
            全部成功时的批量写入结果

        Raises:
            BulkValidationError: 索引名为空或载荷为空时抛出
            TransportError: 网络层失败或错误状态码时抛出
            BulkResponseParseError: 响应体不是合法 JSON 时抛出
            BulkItemError: 响应 errors 为 true 时抛出
        """
        if not index:
            raise BulkValidationError("index 不能为空")
        data = _payload_to_bytes(payload)
        if not data.strip():
            raise BulkValidationError("批量写入载荷不能为空")
        if not data.endswith(b"\n"):
            # _bulk 接口要求载荷以换行符结尾
            data += b"\n"

        response = self.connection.perform_request(
            "POST",
            f"/{quote(index, safe='')}/_bulk",
            headers=NDJSON_HEADERS,
            body=data,
            timeout=timeout,
        )
        body = decode_response(response)

        try:
            parsed = json.loads(body)
        except ValueError as e:
            raise BulkResponseParseError(
                f"无法解析批量写入响应: {str(e)}",
                status=response.status,
                body=body,
            ) from e
        if not isinstance(parsed, dict):
            raise BulkResponseParseError(
                "批量写入响应格式错误: 顶层不是对象",
                status=response.status,
                body=body,
            )

        result = BulkResult.from_response(parsed)
        if result.errors:
            self._logger.warning(
                f"批量写入索引 '{index}': 成功 {result.success}, 失败 {result.failed}"
            )
            raise BulkItemError(result)

        self._logger.info(f"批量写入索引 '{index}': 全部成功 ({result.success})")
        return result
