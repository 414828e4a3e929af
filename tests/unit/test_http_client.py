from __future__ import annotations

import json

import httpx
import pytest

from tablemap.errors import ApiError
from tablemap.infrastructure.http_client import ApiClient


def _client(handler, **kwargs) -> ApiClient:
    return ApiClient(base_url="https://api.example.com/v1/", transport=httpx.MockTransport(handler), **kwargs)


def test_get_joins_base_url_and_sends_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["method"] = request.method
        return httpx.Response(200, json=[{"id": 1}])

    with _client(handler) as client:
        payload = client.fetch("/posts", params={"userId": 3})

    assert payload == [{"id": 1}]
    assert seen == {"url": "https://api.example.com/v1/posts?userId=3", "method": "GET"}


def test_post_sends_json_body_and_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        seen["trace"] = request.headers.get("x-trace")
        return httpx.Response(201, json={"id": 101})

    with _client(handler, headers={"Authorization": "Bearer t"}) as client:
        payload = client.fetch("posts", method="post", body={"title": "x"}, headers={"X-Trace": "abc"})

    assert payload == {"id": 101}
    assert seen == {"body": {"title": "x"}, "auth": "Bearer t", "trace": "abc"}


def test_non_json_success_returns_text():
    with _client(lambda request: httpx.Response(200, text="pong")) as client:
        assert client.fetch("ping") == "pong"


def test_absolute_endpoint_bypasses_base_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["host"] = request.url.host
        return httpx.Response(200, json={})

    with _client(handler) as client:
        client.fetch("https://other.example.org/items")

    assert seen["host"] == "other.example.org"


def test_error_status_raises_with_api_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "title is required"})

    with _client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.fetch("posts", method="PUT", body={})

    assert str(excinfo.value) == "title is required"
    assert excinfo.value.status == 422
    assert excinfo.value.response == {"message": "title is required"}


def test_error_status_without_message_uses_generic_text():
    with _client(lambda request: httpx.Response(500, text="boom")) as client:
        with pytest.raises(ApiError, match="API request failed") as excinfo:
            client.fetch("posts")

    assert excinfo.value.status == 500


def test_transport_failure_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(ApiError, match="connection refused"):
            client.fetch("posts")


def test_missing_base_url_is_an_error():
    with ApiClient(transport=httpx.MockTransport(lambda request: httpx.Response(200))) as client:
        with pytest.raises(ApiError, match="No base URL"):
            client.fetch("posts")
