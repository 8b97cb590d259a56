"""Infrastructure alert conditions: configuration to API object and back."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from relicform.structures import ResourceData


@dataclass
class InfrastructureConditionThreshold:
    duration: int = 0
    value: float | None = None
    function: str = ""


@dataclass
class InfrastructureCondition:
    name: str = ""
    enabled: bool = False
    policy_id: int = 0
    event: str = ""
    comparison: str = ""
    select: str = ""
    type: str = ""
    critical: InfrastructureConditionThreshold | None = None
    description: str = ""
    runbook_url: str = ""
    warning: InfrastructureConditionThreshold | None = None
    where: str = ""
    process_where: str = ""
    integration_provider: str = ""
    violation_close_timer: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def expand_infra_alert_threshold(value: list[Any]) -> InfrastructureConditionThreshold | None:
    if len(value) < 1:
        return None
    raw = value[0]
    threshold = InfrastructureConditionThreshold(duration=raw["duration"])
    if "value" in raw:
        threshold.value = float(raw["value"])
    if "time_function" in raw:
        threshold.function = raw["time_function"].lower()
    return threshold


def expand_infra_alert_condition(d: ResourceData) -> InfrastructureCondition:
    condition = InfrastructureCondition(
        name=d.get("name") or "",
        enabled=bool(d.get("enabled")),
        policy_id=d.get("policy_id") or 0,
        event=d.get("event") or "",
        comparison=(d.get("comparison") or "").lower(),
        select=d.get("select") or "",
        type=(d.get("type") or "").lower(),
        critical=expand_infra_alert_threshold(d.get("critical") or []),
        description=d.get("description") or "",
    )

    runbook_url, ok = d.get_ok("runbook_url")
    if ok:
        condition.runbook_url = runbook_url

    warning, ok = d.get_ok("warning")
    if ok:
        condition.warning = expand_infra_alert_threshold(warning)

    where, ok = d.get_ok("where")
    if ok:
        condition.where = where

    process_where, ok = d.get_ok("process_where")
    if ok:
        condition.process_where = process_where

    provider, ok = d.get_ok("integration_provider")
    if ok:
        condition.integration_provider = provider

    timer, ok = d.get_ok_exists("violation_close_timer")
    if ok:
        condition.violation_close_timer = timer

    validate_attributes_for_type(condition)
    return condition


def _policy_id_from(resource_id: str) -> int:
    parts = resource_id.split(":")
    if len(parts) != 2:
        raise ValueError(f"identifier {resource_id!r} must have 2 parts")
    try:
        return int(parts[0])
    except ValueError as err:
        raise ValueError(f"invalid policy id in {resource_id!r}") from err


def flatten_infra_alert_condition(condition: InfrastructureCondition, d: ResourceData) -> None:
    d.set("policy_id", _policy_id_from(d.id))
    d.set("name", condition.name)
    d.set("runbook_url", condition.runbook_url)
    d.set("enabled", condition.enabled)
    d.set("comparison", condition.comparison.lower())
    d.set("event", condition.event)
    d.set("select", condition.select)
    d.set("type", condition.type.lower())
    d.set("description", condition.description)
    if condition.created_at is not None:
        d.set("created_at", int(condition.created_at.timestamp()))
    if condition.updated_at is not None:
        d.set("updated_at", int(condition.updated_at.timestamp()))

    if condition.where:
        d.set("where", condition.where)
    if condition.process_where:
        d.set("process_where", condition.process_where)
    if condition.integration_provider:
        d.set("integration_provider", condition.integration_provider)
    if condition.violation_close_timer is not None:
        d.set("violation_close_timer", condition.violation_close_timer)

    if condition.critical is not None:
        d.set("critical", flatten_alert_threshold(condition.critical))
    if condition.warning is not None:
        d.set("warning", flatten_alert_threshold(condition.warning))


def flatten_alert_threshold(threshold: InfrastructureConditionThreshold) -> list[dict[str, Any]]:
    out: dict[str, Any] = {
        "duration": threshold.duration,
        "time_function": threshold.function.lower(),
    }
    if threshold.value is not None:
        out["value"] = threshold.value
    return [out]


def _unsupported(attribute: str, condition_type: str) -> ValueError:
    return ValueError(f"{attribute} is not supported by condition type {condition_type}")


def validate_attributes_for_type(condition: InfrastructureCondition) -> None:
    """Raise ``ValueError`` when an attribute is set that the condition type does not allow."""
    c = condition
    critical = c.critical
    if c.type == "infra_process_running":
        if c.event:
            raise _unsupported("event", c.type)
        if c.integration_provider:
            raise _unsupported("integration_provider", c.type)
        if c.select:
            raise _unsupported("select", c.type)
        if critical is not None and critical.function:
            raise _unsupported("time_function", c.type)
    elif c.type == "infra_metric":
        if c.process_where:
            raise _unsupported("process_where", c.type)
    elif c.type == "infra_host_not_reporting":
        if c.event:
            raise _unsupported("event", c.type)
        if c.integration_provider:
            raise _unsupported("integration_provider", c.type)
        if c.select:
            raise _unsupported("select", c.type)
        if c.process_where:
            raise _unsupported("process_where", c.type)
        if c.comparison:
            raise _unsupported("comparison", c.type)
        if critical is not None and critical.function:
            raise _unsupported("time_function", c.type)
        if critical is not None and critical.value is not None and critical.value != 0.0:
            raise _unsupported("value", c.type)