from datetime import datetime

import pytest

from relicform.muting_rule import (
    MutingRule,
    MutingRuleCondition,
    MutingRuleConditionGroup,
    MutingRuleSchedule,
    MutingRuleScheduleCreateInput,
    MutingRuleScheduleUpdateInput,
    expand_muting_rule_condition_group,
    expand_muting_rule_create_input,
    expand_muting_rule_create_schedule,
    expand_muting_rule_update_input,
    expand_muting_rule_update_schedule,
    flatten_muting_rule,
    flatten_muting_rule_condition,
    flatten_schedule,
    flatten_weekly_repeat_days,
)
from relicform.structures import HashSet, ResourceData, hash_string

TIMESTAMP = datetime.fromisoformat("2021-01-21T15:30:00+08:00")
NAIVE = datetime(2021, 1, 21, 15, 30, 0)
TZ = "America/Los_Angeles"


def _schedule(repeat, days):
    return MutingRuleSchedule(
        start_time=TIMESTAMP,
        end_time=TIMESTAMP,
        time_zone=TZ,
        repeat=repeat,
        end_repeat=TIMESTAMP,
        weekly_repeat_days=days,
    )


def _expected_config(repeat, days):
    return {
        "start_time": "2021-01-21T15:30:00",
        "end_time": "2021-01-21T15:30:00",
        "end_repeat": "2021-01-21T15:30:00",
        "time_zone": TZ,
        "repeat": repeat,
        "weekly_repeat_days": days,
    }


def test_flatten_schedule():
    result = flatten_schedule(_schedule("WEEKLY", ["MONDAY", "TUESDAY"]))
    assert result == [_expected_config("WEEKLY", ["MONDAY", "TUESDAY"])]


def test_flatten_schedule_empty_days_with_weekly_repeat():
    result = flatten_schedule(_schedule("WEEKLY", []))
    assert result == [_expected_config("WEEKLY", [])]


def test_flatten_schedule_nil_days_weekly_repeat():
    result = flatten_schedule(_schedule("WEEKLY", None))
    assert result == [_expected_config("WEEKLY", [])]


def test_flatten_schedule_nil_days_daily_repeat():
    result = flatten_schedule(_schedule("DAILY", None))
    assert result == [_expected_config("DAILY", None)]


def _days_set(*days):
    return HashSet(hash_string, days)


def _full_config():
    return {
        "start_time": "2021-01-21T15:30:00",
        "end_time": "2021-01-21T15:30:00",
        "end_repeat": "2021-01-21T15:30:00",
        "time_zone": TZ,
        "repeat": "WEEKLY",
        "weekly_repeat_days": _days_set("MONDAY", "TUESDAY"),
    }


def test_expand_schedule_update_basic():
    result = expand_muting_rule_update_schedule(_full_config())
    assert result == MutingRuleScheduleUpdateInput(
        start_time=NAIVE,
        end_time=NAIVE,
        time_zone=TZ,
        repeat="WEEKLY",
        end_repeat=NAIVE,
        weekly_repeat_days=["TUESDAY", "MONDAY"],
    )


def test_expand_schedule_create_basic():
    result = expand_muting_rule_create_schedule(_full_config())
    assert result == MutingRuleScheduleCreateInput(
        start_time=NAIVE,
        end_time=NAIVE,
        time_zone=TZ,
        repeat="WEEKLY",
        end_repeat=NAIVE,
        weekly_repeat_days=["TUESDAY", "MONDAY"],
    )


def test_expand_schedule_update_empty_fields():
    cfg = _full_config()
    cfg["end_time"] = ""
    cfg["end_repeat"] = ""
    result = expand_muting_rule_update_schedule(cfg)
    assert result == MutingRuleScheduleUpdateInput(
        start_time=NAIVE,
        end_time=None,
        time_zone=TZ,
        repeat="WEEKLY",
        end_repeat=None,
        weekly_repeat_days=["TUESDAY", "MONDAY"],
    )


def test_expand_schedule_create_empty_fields():
    cfg = {
        "start_time": "2021-01-21T15:30:00",
        "end_time": "2021-01-21T15:30:00",
        "end_repeat": "",
        "time_zone": TZ,
    }
    result = expand_muting_rule_create_schedule(cfg)
    assert result == MutingRuleScheduleCreateInput(
        start_time=NAIVE, end_time=NAIVE, time_zone=TZ
    )


def test_expand_schedule_create_empty_weekly_repeat():
    cfg = {
        "start_time": "2021-01-21T15:30:00",
        "time_zone": TZ,
        "repeat": "WEEKLY",
        "weekly_repeat_days": _days_set(),
    }
    result = expand_muting_rule_create_schedule(cfg)
    assert result == MutingRuleScheduleCreateInput(
        start_time=NAIVE, time_zone=TZ, repeat="WEEKLY", weekly_repeat_days=[]
    )


def test_expand_schedule_update_empty_weekly_repeat():
    cfg = {
        "start_time": "2021-01-21T15:30:00",
        "time_zone": TZ,
        "repeat": "WEEKLY",
        "weekly_repeat_days": _days_set(),
    }
    result = expand_muting_rule_update_schedule(cfg)
    assert result == MutingRuleScheduleUpdateInput(
        start_time=NAIVE, time_zone=TZ, repeat="WEEKLY", weekly_repeat_days=[]
    )


def test_expand_schedule_daily_without_days_gives_none_and_upper_repeat():
    cfg = {"repeat": "daily", "weekly_repeat_days": _days_set(), "repeat_count": 0}
    create = expand_muting_rule_create_schedule(cfg)
    update = expand_muting_rule_update_schedule(cfg)
    assert create.repeat == "DAILY"
    assert create.weekly_repeat_days is None and create.repeat_count is None
    assert update.weekly_repeat_days is None and update.repeat_count is None


def test_expand_schedule_repeat_count_positive():
    result = expand_muting_rule_create_schedule({"repeat_count": 3})
    assert result.repeat_count == 3


def test_expand_schedule_bad_time_raises():
    with pytest.raises(ValueError):
        expand_muting_rule_create_schedule({"start_time": "21/01/2021"})
    with pytest.raises(ValueError):
        expand_muting_rule_update_schedule({"end_repeat": "tomorrow"})


def test_expand_condition_group():
    cfg = {
        "operator": "AND",
        "conditions": [
            {"attribute": "conditionName", "operator": "EQUALS", "values": ["a", "b"]},
        ],
    }
    group = expand_muting_rule_condition_group(cfg)
    assert group == MutingRuleConditionGroup(
        conditions=[MutingRuleCondition("conditionName", "EQUALS", ["a", "b"])],
        operator="AND",
    )


def _rule_data():
    return ResourceData(
        {
            "enabled": True,
            "name": "rule",
            "description": "desc",
            "condition": [
                {
                    "operator": "OR",
                    "conditions": [
                        {"attribute": "policyId", "operator": "EQUALS", "values": ["1"]}
                    ],
                }
            ],
            "schedule": [{"start_time": "2021-01-21T15:30:00", "time_zone": TZ}],
        }
    )


def test_expand_create_and_update_input():
    create = expand_muting_rule_create_input(_rule_data())
    update = expand_muting_rule_update_input(_rule_data())
    assert create.name == "rule" and create.enabled is True
    assert create.condition.operator == "OR"
    assert create.condition.conditions[0].values == ["1"]
    assert create.schedule == MutingRuleScheduleCreateInput(start_time=NAIVE, time_zone=TZ)
    assert update.condition == create.condition
    assert update.schedule == MutingRuleScheduleUpdateInput(start_time=NAIVE, time_zone=TZ)


def test_expand_update_input_without_condition():
    update = expand_muting_rule_update_input(ResourceData({"name": "x"}))
    assert update.condition is None and update.schedule is None and update.name == "x"


def test_flatten_muting_rule_uses_api_conditions():
    d = ResourceData()
    rule = MutingRule(
        enabled=True,
        name="rule",
        description="desc",
        condition=MutingRuleConditionGroup(
            [MutingRuleCondition("policyId", "EQUALS", ["1"])], "AND"
        ),
        schedule=MutingRuleSchedule(start_time=NAIVE, repeat="DAILY"),
    )
    flatten_muting_rule(rule, d)
    assert d.get("name") == "rule"
    assert d.get("condition") == [
        {
            "operator": "AND",
            "conditions": [{"attribute": "policyId", "operator": "EQUALS", "values": ["1"]}],
        }
    ]
    assert d.get("schedule")[0]["start_time"] == "2021-01-21T15:30:00"


def test_flatten_muting_rule_condition_filters():
    configured = [
        {"attribute": "a", "operator": "EQUALS", "values": ["x"]},
        {"attribute": "b", "operator": "", "values": ["y"]},
        {"attribute": "c", "operator": "EQUALS", "values": None},
    ]
    assert flatten_muting_rule_condition(configured) == [
        {"attribute": "a", "operator": "EQUALS", "values": ["x"]}
    ]


def test_flatten_weekly_repeat_days():
    assert flatten_weekly_repeat_days(["MONDAY", "FRIDAY"]) == ["MONDAY", "FRIDAY"]