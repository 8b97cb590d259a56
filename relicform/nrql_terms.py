"""NRQL alert condition terms, queries and expiration settings."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from relicform.structures import HashSet, ResourceData

_ATOI = re.compile(r"[+-]?[0-9]+")

OPERATOR_ABOVE = "ABOVE"

# Deprecated time_function values mapped to threshold occurrences, and back.
TIME_FUNCTION_MAP: dict[str, str] = {
    "all": "ALL",
    "any": "AT_LEAST_ONCE",
}
TIME_FUNCTION_MAP_NEW_OLD: dict[str, str] = {new: old for old, new in TIME_FUNCTION_MAP.items()}


def _items(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, HashSet):
        return value.to_list()
    return list(value)


def _atoi(text: str) -> int:
    if not _ATOI.fullmatch(text):
        raise ValueError(f'strconv.Atoi: parsing "{text}": invalid syntax')
    return int(text)


@dataclass
class NrqlConditionTerm:
    operator: str = ""
    priority: str = ""
    threshold: float | None = None
    threshold_duration: int = 0
    threshold_occurrences: str = ""


@dataclass
class NrqlConditionQuery:
    query: str = ""
    evaluation_offset: int | None = None


@dataclass
class AlertsNrqlConditionExpiration:
    expiration_duration: int | None = None
    close_violations_on_expiration: bool = False
    open_violation_on_expiration: bool = False


def expand_nrql_threshold_occurrences(term: dict[str, Any]) -> str:
    """Resolve threshold occurrences from either the new or the deprecated attribute."""
    time_function = term.get("time_function") or ""
    occurrences = term.get("threshold_occurrences") or ""

    if not time_function and not occurrences:
        raise ValueError(
            "one of `time_function` or `threshold_occurrences` must be configured for block `term`"
        )
    if time_function and occurrences:
        raise ValueError(
            "one of `time_function` or `threshold_occurrences` must be configured "
            "for block `term`, but not both"
        )

    if time_function:
        return TIME_FUNCTION_MAP.get(time_function, "")
    return occurrences.upper()


def expand_nrql_condition_term(
    term: dict[str, Any], condition_type: str, priority: str
) -> NrqlConditionTerm:
    duration_in = term.get("duration") or 0
    threshold_duration_in = term.get("threshold_duration") or 0

    if duration_in == 0 and threshold_duration_in == 0:
        raise ValueError(
            "one of `duration` or `threshold_duration` must be configured for block `term`"
        )
    if duration_in > 0 and threshold_duration_in > 0:
        raise ValueError(
            "one of `duration` or `threshold_duration` must be configured "
            "for block `term`, but not both"
        )

    operator = str(term.get("operator") or "").upper()
    if condition_type in ("baseline", "outlier") and operator != OPERATOR_ABOVE:
        raise ValueError(
            "only ABOVE operator is allowed for `baseline` and `outlier` condition types"
        )

    # The deprecated duration is in minutes; the API wants seconds.
    duration = duration_in * 60 if duration_in > 0 else threshold_duration_in

    threshold = float(term["threshold"])
    occurrences = expand_nrql_threshold_occurrences(term)

    if not priority:
        term_priority = term.get("priority")
        if isinstance(term_priority, str) and term_priority:
            priority = term_priority

    return NrqlConditionTerm(
        operator=operator,
        priority=priority.upper(),
        threshold=threshold,
        threshold_duration=duration,
        threshold_occurrences=occurrences,
    )


def expand_nrql_terms(d: ResourceData, condition_type: str) -> list[NrqlConditionTerm]:
    expanded: list[NrqlConditionTerm] = []
    errors: list[str] = []

    for term in _items(d.get("term")):
        try:
            expanded.append(expand_nrql_condition_term(term, condition_type, ""))
        except ValueError as err:
            errors.append(f"unable to expand NRQL condition term: {err}")

    if errors:
        raise ValueError(", ".join(errors))

    if not expanded:
        # critical and warning are lists limited to a single item.
        for priority in ("critical", "warning"):
            block, ok = d.get_ok(priority)
            if ok and block:
                expanded.append(expand_nrql_condition_term(block[0], condition_type, priority))

    return expanded


def _expand_nrql(d: ResourceData) -> NrqlConditionQuery:
    nrql = NrqlConditionQuery()

    query, ok = d.get_ok("nrql.0.query")
    if ok:
        nrql.query = query

    since_value, ok = d.get_ok("nrql.0.since_value")
    if ok:
        nrql.evaluation_offset = _atoi(str(since_value))
    else:
        offset, ok = d.get_ok("nrql.0.evaluation_offset")
        if ok:
            nrql.evaluation_offset = offset

    return nrql


def expand_create_nrql(d: ResourceData) -> NrqlConditionQuery:
    return _expand_nrql(d)


def expand_update_nrql(d: ResourceData) -> NrqlConditionQuery:
    return _expand_nrql(d)


def expand_expiration(d: ResourceData) -> AlertsNrqlConditionExpiration:
    expiration = AlertsNrqlConditionExpiration(
        open_violation_on_expiration=bool(d.get("open_violation_on_expiration")),
        close_violations_on_expiration=bool(d.get("close_violations_on_expiration")),
    )
    # Zero is not a valid expiration duration, so it is left unset.
    duration, ok = d.get_ok("expiration_duration")
    if ok:
        expiration.expiration_duration = duration
    return expiration


def handle_import_flatten_nrql_terms(terms: list[NrqlConditionTerm]) -> list[dict[str, Any]]:
    """Flatten terms using only current attributes, never deprecated ones."""
    return [
        {
            "operator": term.operator.lower(),
            "priority": term.priority.lower(),
            "threshold": term.threshold,
            "threshold_duration": term.threshold_duration,
            "threshold_occurrences": term.threshold_occurrences.lower(),
        }
        for term in terms
    ]


def get_configured_terms(config_terms: list[Any]) -> list[dict[str, Any]]:
    """Return the term attributes as the user configured them."""
    keys = (
        "operator",
        "priority",
        "threshold",
        "duration",
        "time_function",
        "threshold_duration",
        "threshold_occurrences",
    )
    return [{key: t.get(key) for key in keys} for t in config_terms]


def flatten_nrql_terms(
    terms: list[NrqlConditionTerm], config_terms: list[Any]
) -> list[dict[str, Any]]:
    if terms and not config_terms:
        return handle_import_flatten_nrql_terms(terms)

    configured = get_configured_terms(config_terms)
    out: list[dict[str, Any]] = []

    for i, term in enumerate(terms):
        dst: dict[str, Any] = {
            "operator": term.operator.lower(),
            "priority": term.priority.lower(),
            "threshold": term.threshold,
        }
        user_term = configured[i] if i < len(configured) else {}

        set_duration = user_term.get("duration")
        if set_duration is not None and set_duration > 0:
            dst["duration"] = term.threshold_duration // 60
        else:
            dst["threshold_duration"] = term.threshold_duration

        set_time_function = user_term.get("time_function")
        if set_time_function:
            dst["time_function"] = TIME_FUNCTION_MAP_NEW_OLD.get(term.threshold_occurrences, "")
        else:
            dst["threshold_occurrences"] = term.threshold_occurrences.lower()

        out.append(dst)

    return out