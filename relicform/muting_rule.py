"""Alert muting rules: configuration to API input and back."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from relicform.structures import HashSet, ResourceData

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _items(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, HashSet):
        return value.to_list()
    return list(value)


def _parse_time(text: str) -> datetime:
    try:
        return datetime.strptime(text, _TIME_FORMAT)
    except ValueError as err:
        raise ValueError(f"cannot parse {text!r} as {_TIME_FORMAT}") from err


def _optional_time(text: str) -> datetime | None:
    return _parse_time(text) if text else None


@dataclass
class MutingRuleCondition:
    attribute: str = ""
    operator: str = ""
    values: list[str] = field(default_factory=list)


@dataclass
class MutingRuleConditionGroup:
    conditions: list[MutingRuleCondition] = field(default_factory=list)
    operator: str = ""


@dataclass
class MutingRuleScheduleCreateInput:
    start_time: datetime | None = None
    end_time: datetime | None = None
    time_zone: str = ""
    repeat: str | None = None
    end_repeat: datetime | None = None
    repeat_count: int | None = None
    weekly_repeat_days: list[str] | None = None


@dataclass
class MutingRuleScheduleUpdateInput:
    start_time: datetime | None = None
    end_time: datetime | None = None
    time_zone: str | None = None
    repeat: str | None = None
    end_repeat: datetime | None = None
    repeat_count: int | None = None
    weekly_repeat_days: list[str] | None = None


@dataclass
class MutingRuleSchedule:
    start_time: datetime | None = None
    end_time: datetime | None = None
    time_zone: str = ""
    repeat: str | None = None
    end_repeat: datetime | None = None
    repeat_count: int | None = None
    weekly_repeat_days: list[str] | None = None


@dataclass
class MutingRuleCreateInput:
    enabled: bool = False
    name: str = ""
    description: str = ""
    condition: MutingRuleConditionGroup = field(default_factory=MutingRuleConditionGroup)
    schedule: MutingRuleScheduleCreateInput | None = None


@dataclass
class MutingRuleUpdateInput:
    enabled: bool = False
    name: str = ""
    description: str = ""
    condition: MutingRuleConditionGroup | None = None
    schedule: MutingRuleScheduleUpdateInput | None = None


@dataclass
class MutingRule:
    enabled: bool = False
    name: str = ""
    description: str = ""
    condition: MutingRuleConditionGroup = field(default_factory=MutingRuleConditionGroup)
    schedule: MutingRuleSchedule | None = None


def expand_muting_rule_create_input(d: ResourceData) -> MutingRuleCreateInput:
    create_input = MutingRuleCreateInput(
        enabled=bool(d.get("enabled")),
        name=d.get("name") or "",
        description=d.get("description") or "",
    )
    condition, ok = d.get_ok("condition")
    if ok:
        create_input.condition = expand_muting_rule_condition_group(condition[0])
    schedule, ok = d.get_ok("schedule")
    if ok:
        create_input.schedule = expand_muting_rule_create_schedule(schedule[0])
    return create_input


def _weekly_days(cfg: dict[str, Any], raw_repeat: Any) -> list[str] | None:
    days = _items(cfg["weekly_repeat_days"])
    if days or raw_repeat == "WEEKLY":
        return [day.upper() for day in days]
    return None


def expand_muting_rule_create_schedule(cfg: dict[str, Any]) -> MutingRuleScheduleCreateInput:
    schedule = MutingRuleScheduleCreateInput()

    if "start_time" in cfg:
        schedule.start_time = _optional_time(cfg["start_time"])
    if "end_time" in cfg:
        schedule.end_time = _optional_time(cfg["end_time"])
    if "time_zone" in cfg:
        schedule.time_zone = cfg["time_zone"]

    raw_repeat = cfg.get("repeat")
    if raw_repeat:
        schedule.repeat = raw_repeat.upper()

    if "end_repeat" in cfg:
        schedule.end_repeat = _optional_time(cfg["end_repeat"])

    if "repeat_count" in cfg and cfg["repeat_count"] > 0:
        schedule.repeat_count = cfg["repeat_count"]

    if "weekly_repeat_days" in cfg:
        schedule.weekly_repeat_days = _weekly_days(cfg, raw_repeat)

    return schedule


def expand_muting_rule_update_schedule(cfg: dict[str, Any]) -> MutingRuleScheduleUpdateInput:
    schedule = MutingRuleScheduleUpdateInput()

    if "start_time" in cfg:
        schedule.start_time = _optional_time(cfg["start_time"])
    if "end_time" in cfg:
        schedule.end_time = _optional_time(cfg["end_time"])
    if cfg.get("time_zone"):
        schedule.time_zone = cfg["time_zone"]

    raw_repeat = cfg.get("repeat")
    if raw_repeat:
        schedule.repeat = raw_repeat.upper()

    if "end_repeat" in cfg:
        schedule.end_repeat = _optional_time(cfg["end_repeat"])

    if "repeat_count" in cfg:
        count = cfg["repeat_count"]
        schedule.repeat_count = count if count > 0 else None

    if "weekly_repeat_days" in cfg:
        schedule.weekly_repeat_days = _weekly_days(cfg, raw_repeat)

    return schedule


def expand_muting_rule_update_input(d: ResourceData) -> MutingRuleUpdateInput:
    update_input = MutingRuleUpdateInput(
        enabled=bool(d.get("enabled")),
        name=d.get("name") or "",
        description=d.get("description") or "",
    )
    condition, ok = d.get_ok("condition")
    if ok:
        update_input.condition = expand_muting_rule_condition_group(condition[0])
    schedule, ok = d.get_ok("schedule")
    if ok:
        update_input.schedule = expand_muting_rule_update_schedule(schedule[0])
    return update_input


def expand_muting_rule_condition_group(cfg: dict[str, Any]) -> MutingRuleConditionGroup:
    group = MutingRuleConditionGroup(
        conditions=[expand_muting_rule_condition(c) for c in cfg["conditions"]]
    )
    if "operator" in cfg:
        group.operator = cfg["operator"]
    return group


def expand_muting_rule_condition(cfg: dict[str, Any]) -> MutingRuleCondition:
    condition = MutingRuleCondition()
    if "attribute" in cfg:
        condition.attribute = cfg["attribute"]
    if "operator" in cfg:
        condition.operator = cfg["operator"]
    if "values" in cfg:
        condition.values = expand_muting_rule_values(cfg["values"])
    return condition


def expand_muting_rule_values(values: list[Any]) -> list[str]:
    for value in values:
        if not isinstance(value, str):
            raise TypeError(f"muting rule value {value!r} is not a string")
    return list(values)


def flatten_muting_rule(muting_rule: MutingRule, d: ResourceData) -> None:
    configured_condition = d.get("condition") or []
    d.set("enabled", muting_rule.enabled)
    d.set(
        "condition",
        flatten_muting_rule_condition_group(muting_rule.condition, configured_condition),
    )
    d.set("description", muting_rule.description)
    d.set("name", muting_rule.name)
    if muting_rule.schedule is not None:
        d.set("schedule", flatten_schedule(muting_rule.schedule))


def flatten_muting_rule_condition_group(
    group: MutingRuleConditionGroup, configured_condition: list[Any]
) -> list[dict[str, Any]]:
    if group.conditions:
        conditions = handle_import_flatten_condition(group.conditions)
    else:
        conditions = flatten_muting_rule_condition(configured_condition)
    return [{"operator": group.operator, "conditions": conditions}]


def handle_import_flatten_condition(
    conditions: list[MutingRuleCondition],
) -> list[dict[str, Any]]:
    return [
        {"attribute": c.attribute, "operator": c.operator, "values": c.values}
        for c in conditions
    ]


def flatten_muting_rule_condition(conditions: list[Any]) -> list[dict[str, Any]]:
    """Keep configured conditions that carry values and a non-empty operator."""
    return [
        {"attribute": c.get("attribute"), "operator": c.get("operator"), "values": c.get("values")}
        for c in conditions
        if c.get("values") is not None and c.get("attributes") != "" and c.get("operator") != ""
    ]


def flatten_schedule(schedule: MutingRuleSchedule) -> list[dict[str, Any]]:
    out: dict[str, Any] = {}

    if schedule.start_time is not None:
        out["start_time"] = schedule.start_time.strftime(_TIME_FORMAT)
    if schedule.end_time is not None:
        out["end_time"] = schedule.end_time.strftime(_TIME_FORMAT)
    if schedule.end_repeat is not None:
        out["end_repeat"] = schedule.end_repeat.strftime(_TIME_FORMAT)
    if schedule.repeat is not None:
        out["repeat"] = schedule.repeat
    if schedule.time_zone:
        out["time_zone"] = schedule.time_zone
    if schedule.repeat_count is not None:
        out["repeat_count"] = schedule.repeat_count

    if schedule.weekly_repeat_days is not None:
        out["weekly_repeat_days"] = flatten_weekly_repeat_days(schedule.weekly_repeat_days)
    elif schedule.repeat == "WEEKLY":
        out["weekly_repeat_days"] = []
    else:
        out["weekly_repeat_days"] = None

    return [out]


def flatten_weekly_repeat_days(days: list[str]) -> list[str]:
    return [str(day) for day in days]