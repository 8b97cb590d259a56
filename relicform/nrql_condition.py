"""NRQL alert conditions: configuration to API input and back."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from relicform.nrql_terms import (
    AlertsNrqlConditionExpiration,
    NrqlConditionQuery,
    NrqlConditionTerm,
    expand_create_nrql,
    expand_expiration,
    expand_nrql_terms,
    expand_update_nrql,
    flatten_nrql_terms,
)
from relicform.structures import HashSet, ResourceData

_ATOI = re.compile(r"[+-]?[0-9]+")

FILL_OPTION_STATIC = "STATIC"
VALUE_FUNCTION_SINGLE_VALUE = "SINGLE_VALUE"

# Configured fill options mapped to API values, and back.
FILL_OPTION_MAP: dict[str, str] = {
    "none": "NONE",
    "last_value": "LAST_VALUE",
    "static": "STATIC",
}
FILL_OPTION_MAP_NEW_OLD: dict[str, str] = {new: old for old, new in FILL_OPTION_MAP.items()}

# Configured aggregation methods mapped to API values, and back.
AGGREGATION_METHOD_MAP: dict[str, str] = {
    "cadence": "CADENCE",
    "event_flow": "EVENT_FLOW",
    "event_timer": "EVENT_TIMER",
}
AGGREGATION_METHOD_MAP_NEW_OLD: dict[str, str] = {
    new: old for old, new in AGGREGATION_METHOD_MAP.items()
}


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
class AlertsNrqlConditionSignal:
    aggregation_window: int | None = None
    slide_by: int | None = None
    fill_option: str | None = None
    fill_value: float | None = None
    aggregation_method: str | None = None
    aggregation_delay: int | None = None
    aggregation_timer: int | None = None


@dataclass
class _NrqlConditionInput:
    description: str = ""
    enabled: bool = False
    name: str = ""
    baseline_direction: str | None = None
    value_function: str | None = None
    expected_groups: int | None = None
    open_violation_on_group_overlap: bool | None = None
    runbook_url: str = ""
    violation_time_limit_seconds: int = 0
    violation_time_limit: str = ""
    nrql: NrqlConditionQuery = field(default_factory=NrqlConditionQuery)
    terms: list[NrqlConditionTerm] = field(default_factory=list)
    expiration: AlertsNrqlConditionExpiration | None = None
    signal: AlertsNrqlConditionSignal | None = None


@dataclass
class NrqlConditionCreateInput(_NrqlConditionInput):
    """Input for creating an NRQL alert condition."""


@dataclass
class NrqlConditionUpdateInput(_NrqlConditionInput):
    """Input for updating an NRQL alert condition."""


@dataclass
class NrqlAlertCondition:
    id: str = ""
    policy_id: str = ""
    type: str = ""
    description: str = ""
    enabled: bool = False
    name: str = ""
    runbook_url: str = ""
    nrql: NrqlConditionQuery = field(default_factory=NrqlConditionQuery)
    terms: list[NrqlConditionTerm] = field(default_factory=list)
    baseline_direction: str | None = None
    value_function: str | None = None
    expected_groups: int | None = None
    open_violation_on_group_overlap: bool | None = None
    violation_time_limit: str = ""
    violation_time_limit_seconds: int = 0
    expiration: AlertsNrqlConditionExpiration | None = None
    signal: AlertsNrqlConditionSignal | None = None


def _expand_input(d: ResourceData, target: _NrqlConditionInput, default_value_function: bool) -> None:
    target.description = d.get("description") or ""
    target.enabled = bool(d.get("enabled"))
    target.name = d.get("name") or ""

    condition_type = (d.get("type") or "").lower()

    if condition_type == "baseline":
        direction, ok = d.get_ok("baseline_direction")
        if not ok:
            raise ValueError(
                "attribute `baseline_direction` is required for nrql alert conditions "
                f"of type `{condition_type}`"
            )
        target.baseline_direction = direction.upper()

    if condition_type == "static":
        value_function, ok = d.get_ok("value_function")
        if ok:
            target.value_function = value_function.upper()
        elif default_value_function:
            target.value_function = VALUE_FUNCTION_SINGLE_VALUE

    if condition_type == "outlier":
        expected_groups, ok = d.get_ok("expected_groups")
        target.expected_groups = expected_groups if ok else 1

        open_on_overlap = False
        overlap, ok = d.get_ok_exists("open_violation_on_group_overlap")
        if ok:
            open_on_overlap = bool(overlap)
            if target.expected_groups < 2 and open_on_overlap:
                raise ValueError(
                    "attribute `open_violation_on_group_overlap` must be set to false "
                    "when `expected_groups` is 1"
                )
        else:
            ignore_overlap, ok = d.get_ok_exists("ignore_overlap")
            if ok:
                # ignore_overlap is the inverse of open_violation_on_group_overlap.
                open_on_overlap = not ignore_overlap
                if target.expected_groups < 2 and open_on_overlap:
                    raise ValueError(
                        "attribute `ignore_overlap` must be set to true "
                        "when `expected_groups` is 1"
                    )
        target.open_violation_on_group_overlap = open_on_overlap

    runbook_url, ok = d.get_ok("runbook_url")
    if ok:
        target.runbook_url = runbook_url

    limit_seconds, ok = d.get_ok("violation_time_limit_seconds")
    if ok:
        target.violation_time_limit_seconds = limit_seconds
    else:
        limit, ok = d.get_ok("violation_time_limit")
        if ok:
            target.violation_time_limit = limit.upper()

    target.terms = expand_nrql_terms(d, condition_type)
    target.expiration = expand_expiration(d)


def expand_nrql_alert_condition_create_input(d: ResourceData) -> NrqlConditionCreateInput:
    result = NrqlConditionCreateInput()
    _expand_input(d, result, default_value_function=False)
    result.nrql = expand_create_nrql(d)
    result.signal = expand_create_signal(d)
    return result


def expand_nrql_alert_condition_update_input(d: ResourceData) -> NrqlConditionUpdateInput:
    result = NrqlConditionUpdateInput()
    _expand_input(d, result, default_value_function=True)
    result.nrql = expand_update_nrql(d)
    result.signal = expand_update_signal(d)
    return result


def _expand_signal(d: ResourceData) -> AlertsNrqlConditionSignal:
    signal = AlertsNrqlConditionSignal(
        fill_option=FILL_OPTION_MAP.get((d.get("fill_option") or "").lower()),
    )

    # A zero fill value only counts when the fill option is static.
    fill_value, ok = d.get_ok_exists("fill_value")
    if ok:
        value = float(fill_value)
        if value != 0 or signal.fill_option == FILL_OPTION_STATIC:
            signal.fill_value = value

    window, ok = d.get_ok("aggregation_window")
    if ok:
        signal.aggregation_window = window

    slide_by, ok = d.get_ok("slide_by")
    if ok:
        signal.slide_by = slide_by

    method, ok = d.get_ok("aggregation_method")
    if ok:
        signal.aggregation_method = AGGREGATION_METHOD_MAP.get(method.lower())

    delay, ok = d.get_ok("aggregation_delay")
    if ok:
        signal.aggregation_delay = delay

    timer, ok = d.get_ok("aggregation_timer")
    if ok:
        signal.aggregation_timer = timer

    return signal


def expand_create_signal(d: ResourceData) -> AlertsNrqlConditionSignal:
    return _expand_signal(d)


def expand_update_signal(d: ResourceData) -> AlertsNrqlConditionSignal:
    return _expand_signal(d)


def flatten_nrql_alert_condition(
    account_id: int, condition: NrqlAlertCondition, d: ResourceData
) -> None:
    policy_id = _atoi(condition.policy_id)
    condition_type = condition.type.lower()

    d.set("account_id", account_id)
    d.set("type", condition_type)
    d.set("description", condition.description)
    d.set("policy_id", policy_id)
    d.set("name", condition.name)
    d.set("runbook_url", condition.runbook_url)
    d.set("enabled", condition.enabled)

    if condition_type == "baseline":
        d.set("baseline_direction", condition.baseline_direction)

    if condition_type == "static":
        d.set("value_function", condition.value_function)

    if condition_type == "outlier":
        d.set("expected_groups", condition.expected_groups)
        open_on_overlap = bool(condition.open_violation_on_group_overlap)
        if d.get_ok_exists("open_violation_on_group_overlap")[1]:
            d.set("open_violation_on_group_overlap", open_on_overlap)
        elif d.get_ok_exists("ignore_overlap")[1]:
            d.set("ignore_overlap", not open_on_overlap)
        else:
            d.set("open_violation_on_group_overlap", open_on_overlap)

    configured_nrql = d.get("nrql.0") or {}
    d.set("nrql", flatten_nrql(condition.nrql, configured_nrql))

    configured_terms = _items(d.get("term"))
    condition_terms = flatten_nrql_terms(condition.terms, configured_terms)

    if configured_terms:
        d.set("term", condition_terms)
    else:
        # Terms go to the named critical and warning blocks.
        for term in condition_terms:
            priority = term.get("priority")
            if priority in ("critical", "warning"):
                block = {key: value for key, value in term.items() if key != "priority"}
                d.set(priority, [block])

    if d.get_ok("violation_time_limit_seconds")[1]:
        d.set("violation_time_limit_seconds", condition.violation_time_limit_seconds)
    elif d.get_ok("violation_time_limit")[1]:
        d.set("violation_time_limit", condition.violation_time_limit)

    flatten_expiration(d, condition.expiration)
    flatten_signal(d, condition.signal)


def flatten_expiration(d: ResourceData, expiration: AlertsNrqlConditionExpiration | None) -> None:
    if expiration is None:
        return
    d.set("open_violation_on_expiration", expiration.open_violation_on_expiration)
    d.set("close_violations_on_expiration", expiration.close_violations_on_expiration)
    d.set("expiration_duration", expiration.expiration_duration)


def flatten_signal(d: ResourceData, signal: AlertsNrqlConditionSignal | None) -> None:
    if signal is None:
        return
    d.set("aggregation_window", signal.aggregation_window)
    if signal.slide_by is not None:
        d.set("slide_by", signal.slide_by)
    d.set("fill_value", signal.fill_value)
    if signal.fill_option is not None:
        d.set("fill_option", FILL_OPTION_MAP_NEW_OLD.get(signal.fill_option, ""))
    if signal.aggregation_method is not None:
        d.set(
            "aggregation_method",
            AGGREGATION_METHOD_MAP_NEW_OLD.get(signal.aggregation_method, ""),
        )
    if signal.aggregation_delay is not None:
        d.set("aggregation_delay", signal.aggregation_delay)
    if signal.aggregation_timer is not None:
        d.set("aggregation_timer", signal.aggregation_timer)


def flatten_nrql(nrql: NrqlConditionQuery, config_nrql: dict[str, Any]) -> list[dict[str, Any]]:
    out: dict[str, Any] = {"query": nrql.query}
    since_value = config_nrql.get("since_value")
    # Keep the deprecated since_value when that is what was configured.
    if since_value and nrql.evaluation_offset is not None:
        out["since_value"] = str(nrql.evaluation_offset)
    else:
        out["evaluation_offset"] = nrql.evaluation_offset
    return [out]