"""传输层抽象模块.

将底层 HTTP/ES 客户端抽象为最小能力接口：发送请求、读取响应、判断响应是否出错。
重试策略在此接口之上实现，测试时可替换为不发生真实网络 I/O 的假传输层。
"""

from __future__ import annotations

import io
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, BinaryIO, Protocol

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError
from elasticsearch.exceptions import TransportError as EsTransportError

from ..exceptions import TransportError
from ..typing import ParamsDict
from .exceptions import ClientConnectionError
from .models import ClientConfig


@dataclass
class HttpResponse:
    """HTTP 响应.

    Attributes:
        status: HTTP 状态码
        body: 可读取的二进制响应体流，可能为 None
        headers: 响应头
    """

    status: int
    body: BinaryIO | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def is_error(self) -> bool:
        """状态码大于 299 即视为错误响应."""
        return self.status > 299

    def close(self) -> None:
        """关闭响应体."""
        if self.body is not None:
            self.body.close()

    def __str__(self) -> str:
        try:
            phrase = HTTPStatus(self.status).phrase
        except ValueError:
            phrase = ""
        if not phrase:
            return f"[{self.status}]"
        return f"[{self.status} {phrase}]"


class Transport(Protocol):
    """传输层能力接口."""

    def perform_request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsDict | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HttpResponse: ...

    def close(self) -> None: ...


def _body_to_bytes(body: Any) -> bytes:
    """将 ES 客户端反序列化后的响应体还原为字节."""
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


class ElasticsearchTransport:
    """基于 elasticsearch.Elasticsearch 的传输层实现.

    底层客户端的内置重试被关闭，重试与退避由 RetryingConnection 统一负责。
    API 错误（4xx/5xx）转换为错误响应返回，网络层失败抛出 TransportError。

    Examples:
        >>> transport = ElasticsearchTransport.from_config(
        ...     ClientConfig(url="http://localhost:9200")
        ... )
        >>> response = transport.perform_request("GET", "/")
    """

    def __init__(self, es_client: Elasticsearch) -> None:
        self.es_client = es_client

    @classmethod
    def from_config(cls, config: ClientConfig) -> ElasticsearchTransport:
        """根据客户端配置创建传输层，不发生网络请求.

        Args:
            config: 客户端配置

        Returns:
            ElasticsearchTransport 实例

        Raises:
            ClientConnectionError: 当底层客户端无法创建时抛出
        """
        kwargs: dict = {
            "hosts": [config.url],
            "max_retries": 0,
            "retry_on_status": (),
            "retry_on_timeout": False,
            "verify_certs": config.verify_certs,
        }

        # Basic Auth 认证，密码允许为空
        if config.username:
            kwargs["basic_auth"] = (config.username, config.password or "")

        # API Key 认证
        if config.api_key:
            kwargs["api_key"] = config.api_key

        if config.ca_certs:
            kwargs["ca_certs"] = config.ca_certs
        if config.request_timeout is not None:
            kwargs["request_timeout"] = config.request_timeout

        try:
            es_client = Elasticsearch(**kwargs)
        except (ValueError, TypeError) as e:
            raise ClientConnectionError(f"无法创建 ES 客户端: {str(e)}") from e
        return cls(es_client)

    def perform_request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsDict | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """发送请求并返回响应.

        Raises:
            TransportError: 网络层失败（连接失败、超时等）时抛出
        """
        client = self.es_client
        if timeout is not None:
            client = client.options(request_timeout=timeout)

        try:
            result = client.perform_request(
                method,
                path,
                params=params,
                headers=dict(headers) if headers else None,
                body=body,
            )
        except ApiError as e:
            return HttpResponse(
                status=e.meta.status,
                body=io.BytesIO(_body_to_bytes(e.body)),
                headers=dict(e.meta.headers or {}),
            )
        except EsTransportError as e:
            raise TransportError(f"请求 {method} {path} 失败: {str(e)}") from e

        return HttpResponse(
            status=result.meta.status,
            body=io.BytesIO(_body_to_bytes(result.body)),
            headers=dict(result.meta.headers or {}),
        )

    def close(self) -> None:
        """关闭底层客户端连接池."""
        self.es_client.close()
