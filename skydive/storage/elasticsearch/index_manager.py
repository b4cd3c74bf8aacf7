# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Versioned index provisioning: index creation, mappings and alias repoint."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from skydive.storage.errors import ConnectionError, SchemaError
from skydive.utils.logger import get_logger

from .connection import Connection

logger = get_logger(__name__)

STORE_NAME = "skydive"
# Bump when the mappings change in an incompatible way.
INDEX_VERSION = 3

MappingDocument = Union[bytes, str, Dict[str, Any]]
Mappings = Union[Mapping[str, MappingDocument], Iterable[Mapping[str, MappingDocument]]]


@dataclass(frozen=True)
class IndexDescriptor:
    version: int = INDEX_VERSION
    alias: str = STORE_NAME

    @property
    def name(self) -> str:
        return f"{self.alias}_v{self.version}"

    @property
    def prefix(self) -> str:
        return f"{self.alias}_"


def iter_mappings(mappings: Optional[Mappings]) -> Iterator[Tuple[str, MappingDocument]]:
    """Yield ``(object_type, mapping)`` pairs from a dict or a list of dicts."""
    if not mappings:
        return
    documents = [mappings] if isinstance(mappings, Mapping) else mappings
    for document in documents:
        for obj, mapping in document.items():
            yield obj, mapping


class IndexManager:
    """Brings the versioned index into existence and points the alias at it.

    Every step raises ``StorageException`` on failure; callers are expected to
    retry the whole ``ensure_index`` sequence.
    """

    def __init__(self, connection: Connection, descriptor: Optional[IndexDescriptor] = None):
        self._connection = connection
        self.descriptor = descriptor or IndexDescriptor()

    @property
    def index_path(self) -> str:
        return f"/{self.descriptor.name}"

    def ensure_index(self, mappings: Optional[Mappings] = None) -> None:
        self.open_or_create()
        self.put_mappings(mappings)
        self.create_alias()

    def open_or_create(self) -> None:
        try:
            status, _ = self._connection.request("POST", f"{self.index_path}/_open")
        except ConnectionError as e:
            logger.debug("Unable to open index %s: %s", self.descriptor.name, e)
            status = None
        if status == 200:
            return

        try:
            status, body = self._connection.request("PUT", self.index_path)
        except ConnectionError as e:
            raise ConnectionError(
                f"Unable to create the {self.descriptor.alias} index: {e}"
            ) from e
        if status != 200:
            raise SchemaError(
                f"Unable to create the {self.descriptor.alias} index: "
                f"{status} {body.decode('utf-8', errors='replace')}"
            )
        logger.info("Created index %s", self.descriptor.name)

    def put_mappings(self, mappings: Optional[Mappings]) -> None:
        for obj, mapping in iter_mappings(mappings):
            if isinstance(mapping, dict):
                mapping = json.dumps(mapping)
            try:
                status, body = self._connection.request(
                    "PUT", f"{self.index_path}/_mapping/{obj}", body=mapping
                )
            except ConnectionError as e:
                raise ConnectionError(f"Unable to create {obj} mapping: {e}") from e
            if status != 200:
                raise SchemaError(
                    f"Unable to create {obj} mapping: "
                    f"{status} {body.decode('utf-8', errors='replace')}"
                )

    def alias_actions(self, current: Optional[Mapping[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
        """Build the alias batch from the engine's alias table (or None if unknown).

        Every other index carrying the store prefix loses the alias; the current
        versioned index gains it. An index whose entry lists its aliases is only
        touched when the alias is among them; entries without an ``aliases`` key
        are assumed to hold it.
        """
        alias = self.descriptor.alias
        actions: List[Dict[str, Any]] = []
        for index, entry in (current or {}).items():
            if not index.startswith(self.descriptor.prefix) or index == self.descriptor.name:
                continue
            aliases = entry.get("aliases") if isinstance(entry, Mapping) else None
            if aliases is not None and alias not in aliases:
                continue
            actions.append({"remove": {"alias": alias, "index": index}})
        actions.append({"add": {"alias": alias, "index": self.descriptor.name}})
        return {"actions": actions}

    def fetch_aliases(self) -> Optional[Dict[str, Any]]:
        """Return the alias table, or None when the engine did not provide one."""
        try:
            status, data = self._connection.request("GET", "/_aliases")
        except ConnectionError as e:
            logger.debug("Unable to fetch aliases: %s", e)
            return None
        if status != 200:
            return None
        try:
            current = json.loads(data)
        except ValueError as e:
            raise SchemaError(f"Unable to parse aliases: {e}") from e
        if not isinstance(current, dict):
            raise SchemaError(f"Unable to parse aliases: unexpected {type(current).__name__}")
        return current

    def create_alias(self) -> None:
        batch = self.alias_actions(self.fetch_aliases())
        try:
            status, _ = self._connection.request("POST", "/_aliases", body=batch)
        except ConnectionError as e:
            raise ConnectionError(
                f"Unable to create an alias to the {self.descriptor.alias} index: {e}"
            ) from e
        if status != 200:
            raise SchemaError(
                f"Unable to create an alias to the {self.descriptor.alias} index: {status}"
            )
        logger.info("Alias %s now points to %s", self.descriptor.alias, self.descriptor.name)
