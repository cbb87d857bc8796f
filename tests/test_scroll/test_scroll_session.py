"""ScrollSession 与 ScrollCounter 单元测试."""

import json
import logging
import threading
from unittest.mock import MagicMock

import pytest

from conftest import FakeTransport, make_page, make_response
from elasticstream.connection.models import ClientConfig
from elasticstream.connection.tool import RetryingConnection
from elasticstream.exceptions import TransportError
from elasticstream.response import ResponseError
from elasticstream.scroll import (
    ScrollCounter,
    ScrollProtocolError,
    ScrollSession,
    ScrollSettings,
    ScrollState,
    encode_query_body,
    parse_page,
)

QUERY = {"query": {"match_all": {}}}


class PageRecorder:
    """记录处理函数收到的页面，可在指定页抛出异常."""

    def __init__(self, fail_on_page: int | None = None) -> None:
        self.pages: list[bytes] = []
        self.fail_on_page = fail_on_page
        self.error = RuntimeError("handler failed")

    def __call__(self, page: bytes) -> None:
        self.pages.append(page)
        if self.fail_on_page is not None and len(self.pages) == self.fail_on_page:
            raise self.error


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session_factory(transport, sleeps):
    """创建共享计数器的 scroll 会话."""
    counter = ScrollCounter()

    def factory(max_retries: int = 5, logger=None) -> ScrollSession:
        config = ClientConfig(url="http://localhost:9200", max_retries=max_retries)
        connection = RetryingConnection(transport, config, sleep=sleeps.append)
        return ScrollSession(connection, counter, logger=logger, sleep=sleeps.append)

    factory.counter = counter
    return factory


def _requests(transport, method, path):
    return [r for r in transport.requests if r.method == method and r.path == path]


class TestScrollSessionNormal:
    """正常遍历测试."""

    def test_pages_until_empty(self, transport, session_factory, sleeps) -> None:
        """测试逐页交给处理函数，遇到空页结束并清除游标."""
        transport.queue(
            make_response(200, make_page("s1", 2, total=3)),
            make_response(200, make_page("s2", 1)),
            make_response(200, make_page("s2", 0)),
            make_response(200, {"succeeded": True, "num_freed": 1}),
        )
        handler = PageRecorder()
        session = session_factory()

        stats = session.run("users", QUERY, handler)

        assert len(handler.pages) == 2
        assert json.loads(handler.pages[0])["_scroll_id"] == "s1"
        assert stats.pages == 2
        assert stats.hits == 3
        assert stats.total_hits == 3
        assert stats.state is ScrollState.CLOSED
        assert session.state is ScrollState.CLOSED
        # 每处理完一页等待 0.5 秒
        assert sleeps == [0.5, 0.5]

    def test_request_shapes(self, transport, session_factory) -> None:
        """测试打开、翻页、清除请求的参数."""
        transport.queue(
            make_response(200, make_page("s1", 1)),
            make_response(200, make_page("s2", 1)),
            make_response(200, make_page("s2", 0)),
            make_response(200, {"succeeded": True}),
        )
        session_factory().run("users", QUERY, PageRecorder())

        open_request = transport.requests[0]
        assert open_request.method == "POST"
        assert open_request.path == "/users/_search"
        assert open_request.params == {"scroll": "600001ms", "size": 9000}
        assert open_request.json() == QUERY

        continues = _requests(transport, "POST", "/_search/scroll")
        assert [r.json() for r in continues] == [
            {"scroll": "120002ms", "scroll_id": "s1"},
            {"scroll": "120003ms", "scroll_id": "s2"},
        ]

        clears = _requests(transport, "DELETE", "/_search/scroll")
        assert len(clears) == 1
        assert clears[0].json() == {"scroll_id": ["s2"]}

    def test_bytes_query_body(self, transport, session_factory) -> None:
        """测试查询体为已编码字节时原样发送."""
        transport.queue(
            make_response(200, make_page("s1", 0)),
            make_response(200, {"succeeded": True}),
        )
        session_factory().run("users", b'{"size": 10}', PageRecorder())
        assert transport.requests[0].body == b'{"size": 10}'

    def test_timeout_forwarded(self, transport, session_factory) -> None:
        """测试超时时间传给每次请求."""
        transport.queue(
            make_response(200, make_page("s1", 0)),
            make_response(200, {"succeeded": True}),
        )
        session_factory().run("users", QUERY, PageRecorder(), timeout=7)
        assert all(r.timeout == 7 for r in transport.requests)


class TestScrollSessionEdgeCases:
    """边界情况测试."""

    def test_empty_index(self, transport, session_factory) -> None:
        """测试没有匹配文档时不调用处理函数，仍然清除游标."""
        transport.queue(
            make_response(200, make_page("s1", 0)),
            make_response(200, {"succeeded": True}),
        )
        handler = PageRecorder()

        stats = session_factory().run("users", QUERY, handler)

        assert handler.pages == []
        assert stats.pages == 0
        assert stats.state is ScrollState.CLOSED
        assert len(_requests(transport, "DELETE", "/_search/scroll")) == 1
        assert len(_requests(transport, "POST", "/_search/scroll")) == 0

    def test_absent_cursor_delivers_first_page(self, transport, session_factory) -> None:
        """测试打开时未返回游标仍交付首页，但不翻页也不清除."""
        transport.queue(make_response(200, make_page(None, 3)))
        handler = PageRecorder()

        stats = session_factory().run("users", QUERY, handler)

        assert len(handler.pages) == 1
        assert stats.pages == 1
        assert stats.hits == 3
        assert stats.state is ScrollState.CLOSED
        assert len(transport.requests) == 1

    def test_absent_cursor_without_hits_is_noop(
        self, transport, session_factory
    ) -> None:
        """测试未返回游标且没有命中时不调用处理函数."""
        transport.queue(make_response(200, make_page(None, 0)))
        handler = PageRecorder()

        stats = session_factory().run("users", QUERY, handler)

        assert handler.pages == []
        assert stats.pages == 0
        assert len(transport.requests) == 1

    def test_empty_cursor_delivers_first_page(self, transport, session_factory) -> None:
        """测试游标为空字符串时同样视为无游标."""
        transport.queue(make_response(200, make_page("", 2)))
        handler = PageRecorder()

        session_factory().run("users", QUERY, handler)

        assert len(handler.pages) == 1
        assert len(transport.requests) == 1

    def test_absent_cursor_handler_error(self, transport, session_factory) -> None:
        """测试无游标时首页处理失败，异常原样抛出且不发送清除请求."""
        transport.queue(make_response(200, make_page(None, 1)))
        handler = PageRecorder(fail_on_page=1)
        session = session_factory()

        with pytest.raises(RuntimeError) as exc_info:
            session.run("users", QUERY, handler)

        assert exc_info.value is handler.error
        assert session.state is ScrollState.FAILED
        assert len(transport.requests) == 1

    def test_session_runs_once(self, transport, session_factory) -> None:
        """测试会话不能重复运行."""
        transport.queue(
            make_response(200, make_page("s1", 0)),
            make_response(200, {"succeeded": True}),
        )
        session = session_factory()
        session.run("users", QUERY, PageRecorder())

        with pytest.raises(ScrollProtocolError, match="只能运行一次"):
            session.run("users", QUERY, PageRecorder())


class TestScrollSessionFailures:
    """失败处理测试."""

    def test_handler_error_on_page_two(self, transport, session_factory) -> None:
        """测试第 2 页处理失败时不再请求第 3 页，清除游标一次并抛出原异常."""
        transport.queue(
            make_response(200, make_page("s1", 2)),
            make_response(200, make_page("s1", 2)),
            make_response(200, {"succeeded": True}),
        )
        handler = PageRecorder(fail_on_page=2)
        session = session_factory()

        with pytest.raises(RuntimeError) as exc_info:
            session.run("users", QUERY, handler)

        assert exc_info.value is handler.error
        assert len(handler.pages) == 2
        assert len(_requests(transport, "POST", "/_search/scroll")) == 1
        assert len(_requests(transport, "DELETE", "/_search/scroll")) == 1
        assert session.state is ScrollState.FAILED

    def test_open_error_propagates(self, transport, session_factory) -> None:
        """测试打开失败时抛出 ResponseError，无游标可清除."""
        transport.queue(make_response(400, {"error": "bad query"}))

        with pytest.raises(ResponseError) as exc_info:
            session_factory().run("users", QUERY, PageRecorder())

        assert exc_info.value.status == 400
        assert len(transport.requests) == 1

    def test_page_error_terminates_session(self, transport, session_factory) -> None:
        """测试翻页失败时终止会话、不在会话层重试，并清除游标."""
        transport.queue(
            make_response(200, make_page("s1", 1)),
            make_response(500, {"error": "boom"}),
            make_response(200, {"succeeded": True}),
        )
        session = session_factory()

        with pytest.raises(ResponseError) as exc_info:
            session.run("users", QUERY, PageRecorder())

        assert exc_info.value.status == 500
        assert len(_requests(transport, "POST", "/_search/scroll")) == 1
        assert len(_requests(transport, "DELETE", "/_search/scroll")) == 1
        assert session.state is ScrollState.FAILED

    def test_malformed_page(self, transport, session_factory) -> None:
        """测试响应格式错误时抛出 ScrollProtocolError 并清除游标."""
        transport.queue(
            make_response(200, make_page("s1", 1)),
            make_response(200, b"not json"),
            make_response(200, {"succeeded": True}),
        )

        with pytest.raises(ScrollProtocolError):
            session_factory().run("users", QUERY, PageRecorder())

        assert len(_requests(transport, "DELETE", "/_search/scroll")) == 1


class TestClearScroll:
    """游标清除测试."""

    def test_clear_not_found_is_success(self, transport, session_factory, caplog) -> None:
        """测试清除时返回 404 视为成功，不输出警告."""
        transport.queue(
            make_response(200, make_page("s1", 0)),
            make_response(404, {"succeeded": True, "num_freed": 0}),
        )

        with caplog.at_level(logging.WARNING):
            stats = session_factory().run("users", QUERY, PageRecorder())

        assert stats.state is ScrollState.CLOSED
        assert "cannot clear scroll" not in caplog.text

    def test_clear_error_logged_as_warning(self, transport, session_factory, caplog) -> None:
        """测试清除失败只记录警告，不影响会话结果."""
        transport.queue(
            make_response(200, make_page("s1", 0)),
            make_response(500, {"error": "boom"}),
        )

        with caplog.at_level(logging.WARNING):
            stats = session_factory().run("users", QUERY, PageRecorder())

        assert stats.state is ScrollState.CLOSED
        assert "cannot clear scroll" in caplog.text

    def test_clear_transport_error_logged(self, transport, session_factory) -> None:
        """测试清除时网络层失败只记录警告."""
        logger = MagicMock(spec=logging.Logger)
        transport.queue(
            make_response(200, make_page("s1", 0)),
            TransportError("connection reset"),
        )
        session = session_factory(max_retries=0, logger=logger)

        session.run("users", QUERY, PageRecorder())

        logger.warning.assert_called_once()
        assert "connection reset" in logger.warning.call_args.args[0]

    def test_clear_error_does_not_mask_handler_error(
        self, transport, session_factory
    ) -> None:
        """测试清除失败不会覆盖处理函数的异常."""
        transport.queue(
            make_response(200, make_page("s1", 1)),
            make_response(500, {"error": "boom"}),
        )
        handler = PageRecorder(fail_on_page=1)

        with pytest.raises(RuntimeError) as exc_info:
            session_factory().run("users", QUERY, handler)

        assert exc_info.value is handler.error


class TestScrollCounter:
    """ScrollCounter 测试."""

    def test_next_increments(self) -> None:
        """测试计数器递增."""
        counter = ScrollCounter()
        assert counter.next() == 1
        assert counter.next() == 2
        assert counter.value == 2

    def test_thread_safe(self) -> None:
        """测试并发递增不丢失."""
        counter = ScrollCounter()

        def worker():
            for _ in range(1000):
                counter.next()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert counter.value == 8000

    def test_strictly_increasing_across_sessions(
        self, transport, session_factory
    ) -> None:
        """测试同一计数器上的打开与翻页请求所用的计数值严格递增."""
        for scroll_id in ("a", "b"):
            transport.queue(
                make_response(200, make_page(scroll_id, 1)),
                make_response(200, make_page(scroll_id, 1)),
                make_response(200, make_page(scroll_id, 0)),
                make_response(200, {"succeeded": True}),
            )
            session_factory().run("users", QUERY, PageRecorder())

        offsets = []
        for request in transport.requests:
            if request.path == "/users/_search":
                offsets.append(int(request.params["scroll"][:-2]) - 600_000)
            elif request.method == "POST" and request.path == "/_search/scroll":
                offsets.append(int(request.json()["scroll"][:-2]) - 120_000)

        assert offsets == [1, 2, 3, 4, 5, 6]
        assert session_factory.counter.value == 6


class TestParsePage:
    """parse_page 测试."""

    def test_parse(self) -> None:
        """测试解析游标、命中数与总数."""
        page = parse_page(json.dumps(make_page("s1", 3, total=10)).encode())
        assert page.scroll_id == "s1"
        assert page.hit_count == 3
        assert page.total_hits == 10

    def test_legacy_total(self) -> None:
        """测试旧版本整数形式的 total."""
        page = parse_page(b'{"_scroll_id": "s", "hits": {"total": 5, "hits": []}}')
        assert page.total_hits == 5

    def test_missing_hits(self) -> None:
        """测试缺少 hits 字段抛出异常."""
        with pytest.raises(ScrollProtocolError, match="hits.hits"):
            parse_page(b'{"_scroll_id": "s"}')

    def test_invalid_json(self) -> None:
        """测试非法 JSON 抛出异常."""
        with pytest.raises(ScrollProtocolError, match="JSON"):
            parse_page(b"<html>")

    def test_invalid_scroll_id(self) -> None:
        """测试游标不是字符串时抛出异常."""
        with pytest.raises(ScrollProtocolError, match="游标"):
            parse_page(b'{"_scroll_id": 1, "hits": {"hits": []}}')


class TestEncodeQueryBody:
    """encode_query_body 测试."""

    def test_mapping(self) -> None:
        assert json.loads(encode_query_body(QUERY)) == QUERY

    def test_str(self) -> None:
        assert encode_query_body('{"a": 1}') == b'{"a": 1}'

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError):
            encode_query_body(123)


class TestScrollSettings:
    """ScrollSettings 测试."""

    def test_defaults(self) -> None:
        """测试默认分页策略."""
        settings = ScrollSettings()
        assert settings.page_size == 9000
        assert settings.open_keep_alive_ms == 600_000
        assert settings.continue_keep_alive_ms == 120_000
        assert settings.page_delay == 0.5
