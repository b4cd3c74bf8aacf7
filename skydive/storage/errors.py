# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Storage-layer exceptions."""

from typing import Optional


class StorageException(Exception):
    """Base exception for document-store operations."""


class BadConfigError(StorageException):
    """Raised when the elasticsearch configuration is malformed."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "elasticsearch : Config file is misconfigured, check elasticsearch key format"
        )


class ConnectionError(StorageException):
    """Raised when the engine cannot be reached."""


class SchemaError(StorageException):
    """Raised when the index, a mapping or the alias cannot be provisioned."""


class RequestError(StorageException):
    """Raised when the engine answers with a non-success status."""

    def __init__(self, status_code: int, body: bytes = b"", message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        if message is None:
            text = body.decode("utf-8", errors="replace") if body else ""
            message = f"Elasticsearch request failed with status {status_code}: {text}"
        super().__init__(message)


class RecordNotFoundError(RequestError):
    """Raised when a document does not exist."""
