# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Elasticsearch storage backend package."""

from .bulk_indexer import BulkIndexer
from .client import ElasticSearchClient
from .connection import Connection
from .index_manager import INDEX_VERSION, STORE_NAME, IndexDescriptor, IndexManager
from .query import SortOrder, build_search_request, compile_filter, dumps_query

__all__ = [
    "BulkIndexer",
    "Connection",
    "ElasticSearchClient",
    "INDEX_VERSION",
    "IndexDescriptor",
    "IndexManager",
    "STORE_NAME",
    "SortOrder",
    "build_search_request",
    "compile_filter",
    "dumps_query",
]
