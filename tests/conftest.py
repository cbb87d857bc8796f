"""测试公共 fixtures：不发生真实网络 I/O 的假传输层."""

import io
import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from elasticstream.connection.models import ClientConfig
from elasticstream.connection.transport import HttpResponse


@dataclass
class RecordedRequest:
    """假传输层记录的一次请求."""

    method: str
    path: str
    params: dict | None = None
    headers: dict | None = None
    body: bytes | None = None
    timeout: float | None = None

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class FakeTransport:
    """按顺序回放预设响应的假传输层.

    预设项可以是 HttpResponse，也可以是异常实例（发送时抛出）。
    """

    responses: list = field(default_factory=list)
    requests: list[RecordedRequest] = field(default_factory=list)
    closed: bool = False

    def queue(self, *items) -> "FakeTransport":
        self.responses.extend(items)
        return self

    def perform_request(
        self, method, path, *, params=None, headers=None, body=None, timeout=None
    ) -> HttpResponse:
        self.requests.append(
            RecordedRequest(
                method=method,
                path=path,
                params=dict(params) if params else None,
                headers=dict(headers) if headers else None,
                body=body,
                timeout=timeout,
            )
        )
        if not self.responses:
            raise AssertionError(f"未预设响应: {method} {path}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def make_response(status: int = 200, payload: Any = None) -> HttpResponse:
    """构建带内存响应体的 HttpResponse."""
    if payload is None:
        raw = b""
    elif isinstance(payload, bytes):
        raw = payload
    else:
        raw = json.dumps(payload).encode("utf-8")
    return HttpResponse(status=status, body=io.BytesIO(raw))


def make_page(scroll_id: str | None, hit_count: int, total: int | None = None) -> dict:
    """构建一页 scroll 响应体."""
    page: dict = {
        "took": 1,
        "hits": {
            "total": {"value": total if total is not None else hit_count, "relation": "eq"},
            "hits": [{"_id": str(i), "_source": {"n": i}} for i in range(hit_count)],
        },
    }
    if scroll_id is not None:
        page["_scroll_id"] = scroll_id
    return page


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(url="http://localhost:9200", username="elastic", password="changeme")


@pytest.fixture
def sleeps() -> list:
    """记录所有等待时长的列表，配合 sleeps.append 作为 sleep 函数使用."""
    return []
