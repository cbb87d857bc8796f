"""批量写入异常定义模块."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..exceptions import ElasticStreamError, TransportError

if TYPE_CHECKING:
    from .models import BulkErrorItem, BulkResult


class BulkOperationError(ElasticStreamError):
    """批量写入基础异常类."""

    pass


class BulkValidationError(BulkOperationError):
    """批量写入参数验证异常."""

    pass


class BulkResponseParseError(TransportError):
    """批量写入响应无法解析异常.

    服务端已接受请求，但返回的响应体不是合法的 JSON。
    """

    pass


class BulkItemError(BulkOperationError):
    """批量写入部分文档失败异常.

    服务端以 HTTP 200 接受了整个批次，但响应中 errors 为 true，
    其中部分文档被拒绝。调用方可根据 items 决定重试子集、跳过或中止。

    Attributes:
        result: 批量写入结果
        items: 失败的文档列表
    """

    def __init__(self, result: BulkResult) -> None:
        if result.failed_items:
            message = f"批量写入有 {result.failed} 个文档失败: {result.get_error_summary()}"
        else:
            message = f"服务端报告批量写入存在错误: {result.get_error_summary()}"
        super().__init__(message)
        self.result = result

    @property
    def items(self) -> list[BulkErrorItem]:
        return self.result.failed_items
