# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""HTTP connection to the Elasticsearch REST API."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple, Union

import httpx

from skydive.storage.errors import ConnectionError, RequestError
from skydive.utils.logger import get_logger

logger = get_logger(__name__)

Body = Union[str, bytes, Dict[str, Any], list, None]


def _encode_body(body: Body) -> Optional[bytes]:
    if body is None or body == "" or body == b"":
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


class Connection:
    """Single logical connection (pooled by httpx) to one Elasticsearch node."""

    def __init__(
        self,
        host: str,
        port: Union[int, str],
        max_conns: int = 10,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.host = host
        self.port = int(port)
        self.max_conns = max_conns
        self._client = httpx.Client(
            base_url=f"http://{self.host}:{self.port}",
            limits=httpx.Limits(max_connections=max_conns),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def url(self) -> str:
        return str(self._client.base_url)

    def request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Body = None,
    ) -> Tuple[int, bytes]:
        """Issue a raw request and return ``(status_code, content)``.

        Raises:
            ConnectionError: the engine could not be reached.
        """
        try:
            response = self._client.request(
                method,
                path,
                params=query or None,
                content=_encode_body(body),
            )
        except httpx.HTTPError as e:
            raise ConnectionError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response.status_code, response.content

    def json_request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Body = None,
    ) -> Dict[str, Any]:
        """Like ``request`` but raises ``RequestError`` on non-2xx and decodes JSON."""
        status, content = self.request(method, path, query, body)
        if not 200 <= status < 300:
            raise RequestError(status, content)
        if not content:
            return {}
        try:
            return json.loads(content)
        except ValueError as e:
            raise RequestError(
                status, content, f"Invalid JSON response for {method} {path}: {e}"
            ) from e

    def close(self) -> None:
        self._client.close()
