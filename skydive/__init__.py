# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Skydive storage adapter for Elasticsearch."""

__version__ = "0.1.0"
