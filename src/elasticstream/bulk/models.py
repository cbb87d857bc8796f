"""批量写入数据模型定义模块."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class BulkAction(Enum):
    """批量操作类型枚举."""

    INDEX = "index"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"


@dataclass
class BulkOperation:
    """批量操作项数据类，用于构建 NDJSON 载荷.

    Attributes:
        action: 操作类型
        index_name: 索引名称（可选，不指定时使用请求路径中的索引）
        doc_id: 文档ID（DELETE、UPDATE、UPSERT 操作必需）
        source: 文档源数据（用于INDEX、CREATE、UPDATE、UPSERT操作）
        routing: 路由信息（可选）
        retry_on_conflict: 冲突重试次数（用于UPDATE操作）
    """

    action: BulkAction
    index_name: str | None = None
    doc_id: str | None = None
    source: dict[str, Any] | None = None
    routing: str | None = None
    retry_on_conflict: int | None = None


@dataclass
class BulkErrorItem:
    """批量写入错误项数据类.

    Attributes:
        position: 文档在批次中的位置（从 0 开始）
        index_name: 索引名称
        doc_id: 文档ID
        error_type: 错误类型
        error_reason: 错误原因
        status: HTTP状态码
        caused_by: 根本原因
        operation: 失败的操作类型
    """

    position: int
    index_name: str
    doc_id: str | None
    error_type: str
    error_reason: str
    status: int
    caused_by: str | None = None
    operation: BulkAction | None = None

    @classmethod
    def from_item(
        cls, position: int, op_type: str, info: dict[str, Any]
    ) -> BulkErrorItem:
        """从响应 items 中的单项构建错误项."""
        error_info = info.get("error", {})
        if isinstance(error_info, str):
            error_info = {"reason": error_info}

        # 提取根本原因
        caused_by = None
        if "caused_by" in error_info:
            caused_by_info = error_info["caused_by"]
            if isinstance(caused_by_info, dict):
                caused_by = f"{caused_by_info.get('type', '')}: {caused_by_info.get('reason', '')}"
            else:
                caused_by = str(caused_by_info)

        try:
            operation = BulkAction(op_type)
        except ValueError:
            operation = None

        return cls(
            position=position,
            index_name=info.get("_index", ""),
            doc_id=info.get("_id"),
            error_type=error_info.get("type", "unknown"),
            error_reason=error_info.get("reason", "unknown error"),
            status=info.get("status", 0),
            caused_by=caused_by,
            operation=operation,
        )


@dataclass
class BulkResult:
    """批量写入结果数据类.

    Attributes:
        errors: 响应中的 errors 标志，True 表示至少有一个文档失败
        total: 响应中的文档总数
        success: 成功数
        failed: 失败数
        took: 服务端耗时（毫秒）
        failed_items: 失败文档详情列表
    """

    errors: bool = False
    total: int = 0
    success: int = 0
    failed: int = 0
    took: int = 0
    failed_items: list[BulkErrorItem] = field(default_factory=list)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> BulkResult:
        """解析 _bulk 接口的响应体.

        Args:
            data: 已反序列化的响应体

        Returns:
            BulkResult 实例
        """
        result = cls(errors=bool(data.get("errors", False)), took=data.get("took", 0))
        for position, item in enumerate(data.get("items", [])):
            if not item:
                continue
            result.total += 1
            # 每一项形如 {"index": {"_index": ..., "status": ..., "error": ...}}
            op_type, info = next(iter(item.items()))
            if "error" in info:
                result.failed += 1
                result.failed_items.append(
                    BulkErrorItem.from_item(position, op_type, info)
                )
            else:
                result.success += 1
        return result

    def is_success(self) -> bool:
        """判断操作是否全部成功."""
        return not self.errors

    def get_error_summary(self) -> str:
        """获取错误摘要."""
        if not self.failed_items:
            if self.errors:
                return "Server reported errors but listed no failed items"
            return "No errors"
        summary = f"Total errors: {len(self.failed_items)}\n"
        for i, error in enumerate(self.failed_items[:10], 1):  # 只显示前10个错误
            summary += (
                f"{i}. [{error.operation.value if error.operation else 'unknown'}] "
                f"Index: {error.index_name}, DocID: {error.doc_id}, "
                f"Status: {error.status}, Type: {error.error_type}, "
                f"Reason: {error.error_reason}\n"
            )
        if len(self.failed_items) > 10:
            summary += f"... and {len(self.failed_items) - 10} more errors\n"
        return summary
