# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Logger helpers shared by every skydive module."""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "skydive"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger living under the ``skydive`` namespace."""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(config=None) -> logging.Logger:
    """Install a single stream handler on the ``skydive`` root logger.

    Args:
        config: Optional ``LogConfig``. Defaults to INFO with ``DEFAULT_FORMAT``.

    Calling it again replaces the previously installed handler.
    """
    global _handler

    level = getattr(config, "level", "INFO")
    fmt = getattr(config, "format", DEFAULT_FORMAT)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(_handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    return root
