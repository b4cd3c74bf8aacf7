# Copyright (c) 2026 Beijing Volcano Engine Technology Co., Ltd.
# SPDX-License-Identifier: Apache-2.0
"""Filter expression tree for topology queries."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class BoolFilterOp(Enum):
    # Values follow the protobuf enum of the wire format.
    OR = 0
    AND = 1
    NOT = 2


class RangeBound(str, Enum):
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"


@dataclass(frozen=True)
class BoolFilter:
    op: BoolFilterOp
    filters: List["FilterNode"] = field(default_factory=list)


@dataclass(frozen=True)
class TermStringFilter:
    key: str
    value: str = ""


@dataclass(frozen=True)
class TermInt64Filter:
    key: str
    value: int = 0


@dataclass(frozen=True)
class RegexFilter:
    key: str
    value: str = ""


@dataclass(frozen=True)
class RangeFilter:
    key: str
    value: int = 0
    bound: RangeBound = RangeBound.GT


def GtInt64Filter(key: str, value: int = 0) -> RangeFilter:
    return RangeFilter(key, value, RangeBound.GT)


def LtInt64Filter(key: str, value: int = 0) -> RangeFilter:
    return RangeFilter(key, value, RangeBound.LT)


def GteInt64Filter(key: str, value: int = 0) -> RangeFilter:
    return RangeFilter(key, value, RangeBound.GTE)


def LteInt64Filter(key: str, value: int = 0) -> RangeFilter:
    return RangeFilter(key, value, RangeBound.LTE)


FilterExpr = Union[BoolFilter, TermStringFilter, TermInt64Filter, RegexFilter, RangeFilter]


@dataclass(frozen=True)
class Filter:
    """Wire-shaped filter node: one optional slot per variant.

    Exactly one slot is expected to be set. A node with no slot set is
    malformed; ``variant()`` returns None for it.
    """

    bool_filter: Optional[BoolFilter] = None
    term_string_filter: Optional[TermStringFilter] = None
    term_int64_filter: Optional[TermInt64Filter] = None
    regex_filter: Optional[RegexFilter] = None
    gt_int64_filter: Optional[RangeFilter] = None
    lt_int64_filter: Optional[RangeFilter] = None
    gte_int64_filter: Optional[RangeFilter] = None
    lte_int64_filter: Optional[RangeFilter] = None

    def variant(self) -> Optional[FilterExpr]:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                return value
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Filter":
        """Parse the JSON form, e.g. ``{"TermStringFilter": {"Key": "Name", "Value": "eth0"}}``."""
        slots: Dict[str, Any] = {}

        if "BoolFilter" in data:
            raw = data["BoolFilter"] or {}
            slots["bool_filter"] = BoolFilter(
                op=_parse_op(raw.get("Op", BoolFilterOp.OR.value)),
                filters=[cls.from_dict(item) for item in raw.get("Filters") or []],
            )
        if "TermStringFilter" in data:
            raw = data["TermStringFilter"] or {}
            slots["term_string_filter"] = TermStringFilter(
                raw.get("Key", ""), str(raw.get("Value", ""))
            )
        if "TermInt64Filter" in data:
            raw = data["TermInt64Filter"] or {}
            slots["term_int64_filter"] = TermInt64Filter(
                raw.get("Key", ""), int(raw.get("Value", 0))
            )
        if "RegexFilter" in data:
            raw = data["RegexFilter"] or {}
            slots["regex_filter"] = RegexFilter(raw.get("Key", ""), str(raw.get("Value", "")))

        for name, bound in _RANGE_SLOTS.items():
            if name in data:
                raw = data[name] or {}
                slot = f"{bound.name.lower()}_int64_filter"
                slots[slot] = RangeFilter(raw.get("Key", ""), int(raw.get("Value", 0)), bound)

        return cls(**slots)


FilterNode = Union[Filter, FilterExpr]

_RANGE_SLOTS = {
    "GtInt64Filter": RangeBound.GT,
    "LtInt64Filter": RangeBound.LT,
    "GteInt64Filter": RangeBound.GTE,
    "LteInt64Filter": RangeBound.LTE,
}


def _parse_op(raw: Any) -> BoolFilterOp:
    if isinstance(raw, BoolFilterOp):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        return BoolFilterOp(raw)
    if isinstance(raw, str):
        try:
            return BoolFilterOp[raw.upper()]
        except KeyError:
            pass
    raise ValueError(f"Unsupported bool filter op: {raw!r}")
