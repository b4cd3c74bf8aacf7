# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0

import json

import httpx
import pytest

from skydive.storage.elasticsearch.connection import Connection


class FakeElasticsearch:
    """Scripted Elasticsearch REST endpoint for httpx.MockTransport.

    ``routes`` maps ``(method, path)`` to either a response or a list of
    responses consumed one per call (the last one sticks). A response is
    ``(status, body)`` or an exception instance to raise.
    """

    def __init__(self, routes=None, default=(200, {"acknowledged": True})):
        self.routes = dict(routes or {})
        self.default = default
        self.requests = []

    def calls(self, method=None, path=None):
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def json_body(self, request):
        return json.loads(request.content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path), self.default)
        if isinstance(route, list):
            response = route.pop(0) if len(route) > 1 else route[0]
        else:
            response = route
        if isinstance(response, Exception):
            raise response

        status, body = response
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return httpx.Response(status, content=body or b"")


@pytest.fixture
def fake_es():
    return FakeElasticsearch()


@pytest.fixture
def connection(fake_es):
    conn = Connection("127.0.0.1", 9200, transport=httpx.MockTransport(fake_es))
    yield conn
    conn.close()
