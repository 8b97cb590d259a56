"""Composite identifiers of workload resources."""

from __future__ import annotations

import re
from dataclasses import dataclass

_INT = re.compile(r"[+-]?[0-9]+")
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _parse_int32(text: str) -> int:
    if not _INT.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


@dataclass
class WorkloadIDs:
    """Account ID, workload ID and GUID of a workload."""

    account_id: int
    id: int
    guid: str

    def __str__(self) -> str:
        return f"{self.account_id}:{self.id}:{self.guid}"


def parse_workload_ids(ids: str) -> WorkloadIDs:
    """Parse an ``account:workload:guid`` identifier."""
    parts = ids.split(":")
    if len(parts) < 3:
        raise ValueError(f"workload identifier needs three parts: {ids!r}")
    return WorkloadIDs(
        account_id=_parse_int32(parts[0]),
        id=_parse_int32(parts[1]),
        guid=parts[2],
    )