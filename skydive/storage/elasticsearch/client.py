# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Elasticsearch storage client for skydive topology records."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Union

from elasticsearch import Elasticsearch

from skydive.config import ElasticsearchConfig
from skydive.storage.errors import (
    BadConfigError,
    RecordNotFoundError,
    RequestError,
    StorageException,
)
from skydive.utils.logger import get_logger

from .bulk_indexer import BulkIndexer
from .connection import Body, Connection
from .index_manager import IndexDescriptor, IndexManager, Mappings

logger = get_logger(__name__)


def _parse_port(addr: str, port: Union[int, str]) -> int:
    try:
        value = int(port)
    except (TypeError, ValueError) as e:
        raise BadConfigError(f"Invalid elasticsearch address {addr}:{port}: {e}") from e
    if not 1 <= value <= 65535:
        raise BadConfigError(f"Invalid elasticsearch address {addr}:{port}: port out of range")
    return value


class ElasticSearchClient:
    """Store facade: index provisioning at start, then CRUD and search by object type.

    All document operations address the stable alias, never a versioned index.
    They are synchronous and raise ``StorageException`` subclasses on failure.
    """

    def __init__(
        self,
        connection: Connection,
        indexer: BulkIndexer,
        *,
        retry_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        descriptor: Optional[IndexDescriptor] = None,
    ):
        self._connection = connection
        self._indexer = indexer
        self._retry_interval = retry_interval
        self._sleep = sleep
        self._index_manager = IndexManager(connection, descriptor)
        self._started = threading.Event()

    @classmethod
    def new(
        cls,
        addr: str,
        port: Union[int, str],
        max_conns: int = 10,
        retry_seconds: float = 60,
        bulk_max_docs: int = 0,
        **kwargs: Any,
    ) -> "ElasticSearchClient":
        port = _parse_port(addr, port)
        if not addr or not addr.strip():
            raise BadConfigError(f"Invalid elasticsearch address {addr}:{port}: empty host")

        connection = Connection(addr, port, max_conns=max_conns)
        indexer = BulkIndexer(
            Elasticsearch(f"http://{addr}:{port}", connections_per_node=max_conns),
            max_conns=max_conns,
            retry_seconds=retry_seconds,
            bulk_max_docs=bulk_max_docs,
        )
        return cls(connection, indexer, **kwargs)

    @classmethod
    def from_config(cls, config: ElasticsearchConfig, **kwargs: Any) -> "ElasticSearchClient":
        """Build a client from the ``storage.elasticsearch`` section.

        Raises:
            BadConfigError: ``host`` is not a single ``addr:port`` pair.
        """
        parts = config.host.split(":")
        if len(parts) != 2:
            raise BadConfigError()
        return cls.new(
            parts[0],
            parts[1],
            max_conns=config.maxconns,
            retry_seconds=config.retry,
            bulk_max_docs=config.bulk_maxdocs,
            **kwargs,
        )

    @property
    def alias(self) -> str:
        return self._index_manager.descriptor.alias

    @property
    def started(self) -> bool:
        return self._started.is_set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _start(self, mappings: Optional[Mappings]) -> None:
        self._index_manager.ensure_index(mappings)
        self._indexer.start()
        self._started.set()
        logger.info("ElasticSearchStorage started")

    def start(self, mappings: Optional[Mappings] = None, max_attempts: Optional[int] = None) -> None:
        """Provision the index, retrying until the engine accepts it.

        With ``max_attempts`` left to None the loop never gives up. Otherwise the
        last error is raised once the attempts are exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                self._start(mappings)
                return
            except StorageException as e:
                logger.error("Unable to get connected to Elasticsearch: %s", e)
                if max_attempts is not None and attempt >= max_attempts:
                    raise
            self._sleep(self._retry_interval)

    def start_in_background(self, mappings: Optional[Mappings] = None) -> threading.Thread:
        thread = threading.Thread(
            target=self.start, args=(mappings,), name="skydive-es-start", daemon=True
        )
        thread.start()
        return thread

    def stop(self) -> None:
        if self._started.is_set():
            self._indexer.close()
            self._connection.close()
            self._started.clear()

    # =========================================================================
    # Documents
    # =========================================================================

    def _doc_path(self, obj: str, id: str, suffix: str = "") -> str:
        return f"/{self.alias}/{obj}/{id}{suffix}"

    def _call(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Body = None,
    ) -> Dict[str, Any]:
        try:
            return self._connection.json_request(method, path, query, body)
        except RequestError as e:
            if e.status_code == 404 and method in ("GET", "DELETE"):
                raise RecordNotFoundError(e.status_code, e.body) from e
            raise

    def index(self, obj: str, id: str, data: Any) -> Dict[str, Any]:
        return self._call("PUT", self._doc_path(obj, id), body=data)

    def index_child(self, obj: str, parent: str, id: str, data: Any) -> Dict[str, Any]:
        return self._call("PUT", self._doc_path(obj, id), query={"parent": parent}, body=data)

    def bulk_index(self, obj: str, id: str, data: Any, parent: Optional[str] = None) -> None:
        """Queue a document on the bulk indexer; it is written asynchronously."""
        self._indexer.index(self.alias, obj, id, data, parent=parent)

    def update(self, obj: str, id: str, data: Any) -> Dict[str, Any]:
        """Send ``data`` as the ``_update`` body (a ``doc`` or ``script`` payload)."""
        return self._call("POST", self._doc_path(obj, id, "/_update"), body=data)

    def update_with_partial_doc(self, obj: str, id: str, data: Any) -> Dict[str, Any]:
        return self._call("POST", self._doc_path(obj, id, "/_update"), body={"doc": data})

    def get(self, obj: str, id: str) -> Dict[str, Any]:
        return self._call("GET", self._doc_path(obj, id))

    def delete(self, obj: str, id: str) -> Dict[str, Any]:
        return self._call("DELETE", self._doc_path(obj, id))

    def search(self, obj: str, query: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
        """Run a search; ``query`` is the request body, usually from ``build_search_request``."""
        if isinstance(query, dict):
            query = json.dumps(query)
        return self._call("POST", f"/{self.alias}/{obj}/_search", body=query)
