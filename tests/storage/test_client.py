# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from skydive.config import ElasticsearchConfig
from skydive.storage.elasticsearch import BulkIndexer, ElasticSearchClient, build_search_request
from skydive.storage.elasticsearch.index_manager import INDEX_VERSION
from skydive.storage.errors import (
    BadConfigError,
    ConnectionError,
    RecordNotFoundError,
    RequestError,
    SchemaError,
)
from skydive.storage.filters import TermStringFilter

INDEX = f"skydive_v{INDEX_VERSION}"


class _FakeIndexer:
    def __init__(self):
        self.started = False
        self.stopped = False
        self.queued = []

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def close(self):
        self.stop()
        self.closed = True

    def index(self, index, obj, id, data, parent=None):
        self.queued.append((index, obj, id, data, parent))


@pytest.fixture
def indexer():
    return _FakeIndexer()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(connection, indexer, sleeps):
    return ElasticSearchClient(connection, indexer, sleep=sleeps.append)


# ---- Construction ----


def test_bad_host_is_rejected_before_any_request():
    with patch("skydive.storage.elasticsearch.client.Connection") as connection_cls:
        with pytest.raises(BadConfigError):
            ElasticSearchClient.from_config(ElasticsearchConfig(host="badhost"))
        connection_cls.assert_not_called()


def test_too_many_colons_is_rejected():
    with pytest.raises(BadConfigError):
        ElasticSearchClient.from_config(ElasticsearchConfig(host="a:1:2"))


def test_non_numeric_port_is_rejected():
    with pytest.raises(BadConfigError):
        ElasticSearchClient.from_config(ElasticsearchConfig(host="localhost:http"))


@pytest.mark.parametrize("host", [":9200", " :9200", "es:99999", "es:0", "es:-1"])
def test_empty_host_or_out_of_range_port_is_rejected(host):
    with patch("skydive.storage.elasticsearch.client.Connection") as connection_cls:
        with pytest.raises(BadConfigError):
            ElasticSearchClient.from_config(ElasticsearchConfig(host=host))
        connection_cls.assert_not_called()


def test_from_config_wires_connection_and_indexer():
    config = ElasticsearchConfig(host="es.local:9201", maxconns=4, retry=5, bulk_maxdocs=250)
    client = ElasticSearchClient.from_config(config)
    try:
        assert client._connection.host == "es.local"
        assert client._connection.port == 9201
        assert isinstance(client._indexer, BulkIndexer)
        assert client._indexer.max_conns == 4
        assert client._indexer.retry_seconds == 5
        assert client._indexer.bulk_max_docs == 250
        assert client.started is False
    finally:
        client._connection.close()
        client._indexer.close()


# ---- Startup ----


def test_start_marks_ready(fake_es, client, indexer):
    client.start({"node": "{}"})

    assert client.started is True
    assert indexer.started is True
    assert len(fake_es.calls("POST", "/_aliases")) == 1


def test_start_retries_until_engine_is_reachable(fake_es, client, indexer, sleeps):
    refused = httpx.ConnectError("Connection refused")
    fake_es.routes[("POST", f"/{INDEX}/_open")] = [refused, refused, refused, (200, {})]
    fake_es.routes[("PUT", f"/{INDEX}")] = [refused, refused, refused, (200, {})]

    client.start({"node": "{}"})

    assert len(fake_es.calls("POST", f"/{INDEX}/_open")) == 4
    assert sleeps == [1.0, 1.0, 1.0]
    assert client.started is True
    assert indexer.started is True


def test_start_retries_schema_errors(fake_es, client, sleeps):
    fake_es.routes[("PUT", f"/{INDEX}/_mapping/node")] = [(400, b"bad"), (200, {})]

    client.start({"node": "{}"})

    assert sleeps == [1.0]
    assert client.started is True


def test_start_with_max_attempts_raises_last_error(fake_es, connection, indexer, sleeps):
    fake_es.default = httpx.ConnectError("Connection refused")
    client = ElasticSearchClient(connection, indexer, retry_interval=0.5, sleep=sleeps.append)

    with pytest.raises(ConnectionError):
        client.start(max_attempts=3)

    assert sleeps == [0.5, 0.5]
    assert client.started is False
    assert indexer.started is False


def test_start_in_background(fake_es, client):
    thread = client.start_in_background({"node": "{}"})
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert client.started is True


def test_stop_tears_down_only_when_started(client, indexer):
    client._connection = MagicMock()

    client.stop()
    assert indexer.stopped is False
    client._connection.close.assert_not_called()

    client._started.set()
    client.stop()
    assert indexer.stopped is True
    assert indexer.closed is True
    client._connection.close.assert_called_once()
    assert client.started is False


# ---- Documents ----


def test_index_puts_document_on_alias(fake_es, client):
    fake_es.routes[("PUT", "/skydive/node/n1")] = (201, {"_id": "n1", "created": True})

    result = client.index("node", "n1", {"ID": "n1", "Metadata": {"Name": "eth0"}})

    assert result == {"_id": "n1", "created": True}
    request = fake_es.requests[-1]
    assert fake_es.json_body(request) == {"ID": "n1", "Metadata": {"Name": "eth0"}}


def test_index_child_passes_parent(fake_es, client):
    client.index_child("edge", "n1", "e1", {"ID": "e1"})

    request = fake_es.requests[-1]
    assert request.url.path == "/skydive/edge/e1"
    assert request.url.params["parent"] == "n1"


def test_update_sends_body_verbatim(fake_es, client):
    client.update("node", "n1", {"script": "ctx._source.Revision += 1"})

    request = fake_es.requests[-1]
    assert (request.method, request.url.path) == ("POST", "/skydive/node/n1/_update")
    assert fake_es.json_body(request) == {"script": "ctx._source.Revision += 1"}


def test_update_with_partial_doc_wraps_in_doc(fake_es, client):
    client.update_with_partial_doc("node", "n1", {"Revision": 2})

    assert fake_es.json_body(fake_es.requests[-1]) == {"doc": {"Revision": 2}}


def test_get_returns_document(fake_es, client):
    fake_es.routes[("GET", "/skydive/node/n1")] = (200, {"found": True, "_source": {"ID": "n1"}})

    assert client.get("node", "n1")["_source"] == {"ID": "n1"}


def test_get_missing_raises_record_not_found(fake_es, client):
    fake_es.routes[("GET", "/skydive/node/n2")] = (404, {"found": False})

    with pytest.raises(RecordNotFoundError) as excinfo:
        client.get("node", "n2")
    assert excinfo.value.status_code == 404


def test_delete_missing_raises_record_not_found(fake_es, client):
    fake_es.routes[("DELETE", "/skydive/node/n2")] = (404, {"found": False})

    with pytest.raises(RecordNotFoundError):
        client.delete("node", "n2")


def test_operational_errors_are_not_retried(fake_es, client, sleeps):
    fake_es.routes[("PUT", "/skydive/node/n1")] = (500, b"boom")

    with pytest.raises(RequestError) as excinfo:
        client.index("node", "n1", {})

    assert excinfo.value.status_code == 500
    assert not isinstance(excinfo.value, RecordNotFoundError)
    assert len(fake_es.calls("PUT", "/skydive/node/n1")) == 1
    assert sleeps == []


def test_search_posts_compiled_query(fake_es, client):
    hits = {"hits": {"total": 1, "hits": [{"_id": "n1"}]}}
    fake_es.routes[("POST", "/skydive/node/_search")] = (200, hits)
    body = build_search_request(TermStringFilter("Name", "eth0"), "Metadata.")

    assert client.search("node", json.dumps(body)) == hits
    assert fake_es.json_body(fake_es.requests[-1]) == {
        "query": {"term": {"Metadata.Name": "eth0"}}
    }


def test_search_accepts_dict(fake_es, client):
    client.search("node", {"query": {"match_all": {}}})

    assert fake_es.json_body(fake_es.requests[-1]) == {"query": {"match_all": {}}}


def test_bulk_index_queues_on_alias(client, indexer):
    client.bulk_index("edge", "e1", {"ID": "e1"}, parent="n1")

    assert indexer.queued == [("skydive", "edge", "e1", {"ID": "e1"}, "n1")]


def test_schema_errors_are_storage_errors():
    from skydive.storage.errors import StorageException

    assert issubclass(SchemaError, StorageException)
    assert issubclass(ConnectionError, StorageException)
