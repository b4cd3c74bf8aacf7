# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""
BulkIndexer: batches document writes into ``_bulk`` requests.

Documents are queued by callers and flushed by a dedicated worker thread,
either when ``bulk_max_docs`` documents are pending or every
``flush_interval`` seconds. Each batch is written with
``elasticsearch.helpers.streaming_bulk`` on a pool of ``max_conns`` threads.
A batch whose request cannot reach the engine is resent every
``retry_seconds`` until the indexer stops.
"""

import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from elasticsearch import Elasticsearch, TransportError
from elasticsearch.helpers import streaming_bulk

from skydive.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BULK_MAX_DOCS = 100
# Retries of throttled (429) chunks, handled by streaming_bulk itself.
BULK_MAX_RETRIES = 3


class BulkIndexer:
    def __init__(
        self,
        es: Elasticsearch,
        max_conns: int = 10,
        retry_seconds: float = 60,
        bulk_max_docs: int = DEFAULT_BULK_MAX_DOCS,
        flush_interval: float = 1.0,
    ):
        self._es = es
        self.max_conns = max(1, max_conns)
        self.retry_seconds = retry_seconds
        self.bulk_max_docs = bulk_max_docs if bulk_max_docs > 0 else DEFAULT_BULK_MAX_DOCS
        self.flush_interval = flush_interval

        self._queue: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._started = False
        self._lock = threading.Lock()

        self.sent_docs = 0
        self.failed_docs = 0

    @property
    def started(self) -> bool:
        return self._started

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._started:
            return

        self._started = True
        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_conns, thread_name_prefix="skydive-bulk"
        )
        self._thread = threading.Thread(target=self._worker_loop, daemon=True)
        self._thread.start()
        logger.info(
            "[BulkIndexer] Started (max_conns=%d, bulk_max_docs=%d)",
            self.max_conns,
            self.bulk_max_docs,
        )

    def stop(self) -> None:
        """Flush what is queued and wait for the in-flight sends."""
        if not self._started:
            return

        self._stop_event.set()
        # Wake the worker if it is blocked on an empty queue.
        self._queue.put(None)
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._started = False
        logger.info("[BulkIndexer] Stopped")

    def close(self) -> None:
        self.stop()
        self._es.close()

    def index(
        self,
        index: str,
        obj: str,
        id: str,
        data: Any,
        parent: Optional[str] = None,
    ) -> None:
        action: Dict[str, Any] = {
            "_op_type": "index",
            "_index": index,
            "_type": obj,
            "_id": id,
            "_source": data,
        }
        if parent:
            action["parent"] = parent
        self._queue.put(action)

    def _worker_loop(self) -> None:
        batch: List[Dict[str, Any]] = []
        deadline = time.monotonic() + self.flush_interval

        while not (self._stop_event.is_set() and self._queue.empty()):
            try:
                timeout = max(0.0, deadline - time.monotonic())
                item = self._queue.get(timeout=timeout)
                if item is not None:
                    batch.append(item)
            except queue.Empty:
                pass

            if len(batch) >= self.bulk_max_docs or time.monotonic() >= deadline:
                if batch:
                    self._submit(batch)
                    batch = []
                deadline = time.monotonic() + self.flush_interval

        if batch:
            self._submit(batch)

    def _submit(self, batch: List[Dict[str, Any]]) -> None:
        if self._executor is None:
            self._send(batch)
            return
        self._executor.submit(self._send, batch)

    def _send(self, batch: List[Dict[str, Any]]) -> None:
        while True:
            try:
                sent, failed = 0, 0
                for ok, item in streaming_bulk(
                    self._es,
                    batch,
                    chunk_size=self.bulk_max_docs,
                    max_retries=BULK_MAX_RETRIES,
                    raise_on_error=False,
                    raise_on_exception=False,
                ):
                    if ok:
                        sent += 1
                    else:
                        failed += 1
                        logger.error("[BulkIndexer] Document write failed: %s", item)
                with self._lock:
                    self.sent_docs += sent
                    self.failed_docs += failed
                return
            except TransportError as e:
                logger.error(
                    "[BulkIndexer] Bulk request of %d documents failed: %s", len(batch), e
                )

            if self._stop_event.wait(self.retry_seconds):
                with self._lock:
                    self.failed_docs += len(batch)
                return
