"""elasticstream 类型定义模块."""

from collections.abc import Callable, Mapping
from typing import Any, BinaryIO, Union

# 页面处理函数类型，参数为一页 scroll 响应的原始字节
PageHandler = Callable[[bytes], None]

# 查询体类型：已编码的 JSON 字节、JSON 字符串或字典
QueryBody = Union[bytes, str, Mapping[str, Any]]

# 批量写入载荷类型：NDJSON 字节、字符串或内存缓冲区
BulkPayload = Union[bytes, bytearray, str, BinaryIO]

# 退避函数类型，参数为重试序号（从 0 开始），返回等待秒数
BackoffFunc = Callable[[int], float]

# 请求参数字典类型
ParamsDict = dict[str, Any]
