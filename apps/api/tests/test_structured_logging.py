import pytest
from starlette.requests import Request

from basegrid.core.structured_logging import build_log_context, request_log_context


def test_build_log_context_keeps_only_set_values():
    context = build_log_context(user_id=4, base_id=None, request_id="abc", route="/bases/1", method="GET")

    assert context == {"user_id": 4, "request_id": "abc", "route": "/bases/1", "method": "GET"}


def test_build_log_context_empty():
    assert build_log_context() == {}


def test_build_log_context_rejects_free_text():
    with pytest.raises(TypeError):
        build_log_context(email="ana@example.com")


def test_request_log_context():
    request = Request({
        "type": "http",
        "method": "PATCH",
        "path": "/bases/7/tables/3",
        "headers": [],
        "query_string": b"",
        "path_params": {"base_id": "7", "table_id": "3"},
    })
    request.state.request_id = "req-1"

    assert request_log_context(request, user_id=2) == {
        "user_id": 2,
        "base_id": 7,
        "request_id": "req-1",
        "route": "/bases/7/tables/3",
        "method": "PATCH",
    }
