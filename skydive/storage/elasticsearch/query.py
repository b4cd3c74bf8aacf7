# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Translation of filter trees into the Elasticsearch query DSL."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any, Dict, List, Optional

from skydive.storage.filters import (
    BoolFilter,
    BoolFilterOp,
    Filter,
    FilterNode,
    RangeFilter,
    RegexFilter,
    TermInt64Filter,
    TermStringFilter,
)

_BOOL_KEYWORDS = {
    BoolFilterOp.NOT: "must_not",
    BoolFilterOp.OR: "should",
    BoolFilterOp.AND: "must",
}


class SortOrder(IntEnum):
    ASCENDING = 0
    DESCENDING = 1


def compile_filter(expr: Optional[FilterNode], prefix: str = "") -> Optional[Dict[str, Any]]:
    """Compile a filter node into a query fragment.

    ``prefix`` is prepended to every field key so that filters written against
    a child document (e.g. ``"Metadata."``) can be reused as is.

    Never raises. A ``Filter`` with no variant set, or an object that is not a
    filter at all, compiles to None and must be read as "no constraint".
    A range bound equal to zero is dropped, leaving an empty range body.
    """
    if expr is None:
        return {"match_all": {}}
    if isinstance(expr, Filter):
        variant = expr.variant()
        if variant is None:
            return None
        return compile_filter(variant, prefix)
    if isinstance(expr, BoolFilter):
        keyword = _BOOL_KEYWORDS.get(expr.op, "")
        return {
            "bool": {
                keyword: [compile_filter(item, prefix) for item in expr.filters],
            }
        }
    if isinstance(expr, TermStringFilter):
        return {"term": {prefix + expr.key: expr.value}}
    if isinstance(expr, TermInt64Filter):
        return {"term": {prefix + expr.key: expr.value}}
    if isinstance(expr, RegexFilter):
        return {"regexp": {prefix + expr.key: expr.value}}
    if isinstance(expr, RangeFilter):
        bounds: Dict[str, Any] = {}
        if expr.value:
            bounds[expr.bound.value] = expr.value
        return {"range": {prefix + expr.key: bounds}}
    return None


def build_search_request(
    expr: Optional[FilterNode],
    prefix: str = "",
    *,
    sort_by: Optional[str] = None,
    order: SortOrder = SortOrder.ASCENDING,
    size: Optional[int] = None,
    offset: int = 0,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"query": compile_filter(expr, prefix)}
    if sort_by:
        direction = "desc" if order == SortOrder.DESCENDING else "asc"
        sort: List[Dict[str, Any]] = [{sort_by: {"order": direction}}]
        body["sort"] = sort
    if size is not None:
        body["size"] = size
    if offset:
        body["from"] = offset
    return body


def dumps_query(body: Dict[str, Any]) -> str:
    return json.dumps(body, separators=(",", ":"))
