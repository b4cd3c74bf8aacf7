# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Configuration models for the skydive storage adapter."""

import json
from pathlib import Path
from typing import Union

from pydantic import BaseModel, Field

from skydive.utils.logger import DEFAULT_FORMAT


class ElasticsearchConfig(BaseModel):
    """``storage.elasticsearch`` section.

    ``host`` is kept as the raw ``addr:port`` string; it is split and checked
    when the client is built so a malformed value fails before any request.
    """

    host: str = Field(default="127.0.0.1:9200", description="Elasticsearch address as host:port")
    maxconns: int = Field(default=10, ge=1, description="Maximum number of HTTP connections")
    retry: int = Field(default=60, ge=0, description="Seconds before a failed bulk is resent")
    bulk_maxdocs: int = Field(default=100, description="Documents per bulk request")


class StorageConfig(BaseModel):
    elasticsearch: ElasticsearchConfig = Field(default_factory=ElasticsearchConfig)


class LogConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level of the skydive loggers")
    format: str = Field(default=DEFAULT_FORMAT, description="logging.Formatter format string")


class SkydiveConfig(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "SkydiveConfig":
        return cls.model_validate(data or {})


def load_config(path: Union[str, Path]) -> SkydiveConfig:
    """Load a JSON configuration file. Missing sections take their defaults."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return SkydiveConfig.from_dict(data)
