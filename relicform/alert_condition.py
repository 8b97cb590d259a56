"""APM alert conditions: configuration to API object and back."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from relicform.structures import HashSet, ResourceData

_INT = re.compile(r"[+-]?[0-9]+")


def _items(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, HashSet):
        return value.to_list()
    return list(value)


def _parse_int32(text: str) -> int:
    if not _INT.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not -(2**31) <= value <= 2**31 - 1:
        raise ValueError(f"integer out of range: {text!r}")
    return value


@dataclass
class UserDefined:
    metric: str = ""
    value_function: str = ""


@dataclass
class ConditionTerm:
    duration: int = 0
    operator: str = ""
    priority: str = ""
    threshold: float = 0.0
    time_function: str = ""


@dataclass
class Condition:
    type: str = ""
    name: str = ""
    enabled: bool = False
    metric: str = ""
    scope: str = ""
    gc_metric: str = ""
    entities: list[str] = field(default_factory=list)
    terms: list[ConditionTerm] = field(default_factory=list)
    violation_close_timer: int = 0
    runbook_url: str = ""
    user_defined: UserDefined = field(default_factory=UserDefined)


def expand_alert_condition(d: ResourceData) -> Condition:
    condition = Condition(
        type=d.get("type") or "",
        name=d.get("name") or "",
        enabled=bool(d.get("enabled")),
        metric=d.get("metric") or "",
        scope=d.get("condition_scope") or "",
        gc_metric=d.get("gc_metric") or "",
        entities=expand_alert_condition_entities(_items(d.get("entities"))),
        terms=expand_alert_condition_terms(_items(d.get("term"))),
    )

    timer, ok = d.get_ok("violation_close_timer")
    if ok:
        if condition.type == "apm_app_metric" and condition.scope == "application":
            raise ValueError(
                "violation_close_timer only supported for apm_app_metric "
                "when condition_scope = 'instance'"
            )
        condition.violation_close_timer = timer

    runbook_url, ok = d.get_ok("runbook_url")
    if ok:
        condition.runbook_url = runbook_url

    metric, ok = d.get_ok("user_defined_metric")
    if ok:
        condition.user_defined.metric = metric

    value_function, ok = d.get_ok("user_defined_value_function")
    if ok:
        condition.user_defined.value_function = value_function

    return condition


def expand_alert_condition_entities(entities: list[Any]) -> list[str]:
    return [str(int(entity)) for entity in entities]


def expand_alert_condition_terms(terms: list[dict[str, Any]]) -> list[ConditionTerm]:
    return [
        ConditionTerm(
            duration=term["duration"],
            operator=term["operator"],
            priority=term["priority"],
            threshold=float(term["threshold"]),
            time_function=term["time_function"],
        )
        for term in terms
    ]


def flatten_alert_condition(condition: Condition, d: ResourceData) -> None:
    d.set("name", condition.name)
    d.set("enabled", condition.enabled)
    d.set("type", condition.type)
    d.set("metric", condition.metric)
    d.set("runbook_url", condition.runbook_url)
    d.set("violation_close_timer", condition.violation_close_timer)
    d.set("gc_metric", condition.gc_metric)
    d.set("user_defined_metric", condition.user_defined.metric)
    d.set("user_defined_value_function", condition.user_defined.value_function)

    # The API does not always return the scope; keep the configured one then.
    if condition.scope:
        d.set("condition_scope", condition.scope)
    else:
        d.set("condition_scope", d.get("condition_scope"))

    try:
        entities = flatten_alert_condition_entities(condition.entities)
    except ValueError as err:
        raise ValueError(f"[DEBUG] Error setting alert condition entities: {err!r}") from err

    d.set("entities", entities)
    d.set("term", flatten_alert_condition_terms(condition.terms))


def flatten_alert_condition_entities(entities: list[str]) -> list[int]:
    return [_parse_int32(entity) for entity in entities]


def flatten_alert_condition_terms(terms: list[ConditionTerm]) -> list[dict[str, Any]]:
    return [
        {
            "duration": term.duration,
            "operator": term.operator,
            "priority": term.priority,
            "threshold": term.threshold,
            "time_function": term.time_function,
        }
        for term in terms
    ]