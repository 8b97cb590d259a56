import pytest

from relicform.nrql_terms import (
    AlertsNrqlConditionExpiration,
    NrqlConditionQuery,
    NrqlConditionTerm,
    expand_create_nrql,
    expand_expiration,
    expand_nrql_condition_term,
    expand_nrql_terms,
    expand_nrql_threshold_occurrences,
    expand_update_nrql,
    flatten_nrql_terms,
    get_configured_terms,
    handle_import_flatten_nrql_terms,
)
from relicform.structures import ResourceData

QUERY = "SELECT percentile(duration, 95) FROM Transaction WHERE appName = 'Dummy App'"

CRITICAL = {
    "threshold": 1,
    "threshold_occurrences": "AT_LEAST_ONCE",
    "threshold_duration": 600,
    "operator": "ABOVE",
}
WARNING = {
    "threshold": 10.9,
    "threshold_occurrences": "AT_LEAST_ONCE",
    "threshold_duration": 660,
    "operator": "BELOW",
}


def _term(**extra):
    base = {
        "threshold": 10.9,
        "threshold_duration": 9,
        "threshold_occurrences": "ALL",
        "operator": "equals",
    }
    base.update(extra)
    return base


@pytest.mark.parametrize(
    "term,priority,expected_priority,duration",
    [
        (_term(threshold_duration=5), "critical", "CRITICAL", 5),
        (_term(threshold_duration=5, priority="critical"), "critical", "CRITICAL", 5),
        (_term(), "warning", "WARNING", 9),
        (_term(priority="warning"), "", "WARNING", 9),
        (_term(priority="critical"), "warning", "WARNING", 9),
    ],
)
def test_expand_nrql_condition_term(term, priority, expected_priority, duration):
    result = expand_nrql_condition_term(term, "static", priority)
    assert result == NrqlConditionTerm(
        operator="EQUALS",
        priority=expected_priority,
        threshold=10.9,
        threshold_duration=duration,
        threshold_occurrences="ALL",
    )


@pytest.mark.parametrize("condition_type", ["baseline", "outlier"])
def test_non_above_operator_rejected(condition_type):
    with pytest.raises(ValueError) as exc:
        expand_nrql_condition_term(_term(priority="critical"), condition_type, "warning")
    assert str(exc.value) == (
        "only ABOVE operator is allowed for `baseline` and `outlier` condition types"
    )


def test_duration_in_minutes_converted_to_seconds():
    term = {"threshold": 2, "duration": 5, "time_function": "any", "operator": "above"}
    result = expand_nrql_condition_term(term, "baseline", "critical")
    assert result.threshold_duration == 300
    assert result.threshold_occurrences == "AT_LEAST_ONCE"
    assert result.operator == "ABOVE"


def test_duration_missing_and_both():
    with pytest.raises(ValueError, match="must be configured for block `term`$"):
        expand_nrql_condition_term(_term(threshold_duration=0), "static", "")
    with pytest.raises(ValueError, match="but not both"):
        expand_nrql_condition_term(_term(duration=1), "static", "")


def test_threshold_occurrences_rules():
    assert expand_nrql_threshold_occurrences({"time_function": "all"}) == "ALL"
    assert expand_nrql_threshold_occurrences({"threshold_occurrences": "at_least_once"}) == (
        "AT_LEAST_ONCE"
    )
    with pytest.raises(ValueError, match="must be configured for block `term`$"):
        expand_nrql_threshold_occurrences({"threshold_occurrences": ""})
    with pytest.raises(ValueError, match="but not both"):
        expand_nrql_threshold_occurrences({"time_function": "all", "threshold_occurrences": "ALL"})


def test_expand_terms_critical_only():
    d = ResourceData({"critical": [CRITICAL]})
    assert expand_nrql_terms(d, "static") == [
        NrqlConditionTerm("ABOVE", "CRITICAL", 1.0, 600, "AT_LEAST_ONCE"),
    ]


def test_expand_terms_critical_and_warning():
    d = ResourceData({"critical": [CRITICAL], "warning": [WARNING]})
    assert expand_nrql_terms(d, "static") == [
        NrqlConditionTerm("ABOVE", "CRITICAL", 1.0, 600, "AT_LEAST_ONCE"),
        NrqlConditionTerm("BELOW", "WARNING", 10.9, 660, "AT_LEAST_ONCE"),
    ]


def test_expand_terms_prefers_term_blocks():
    term = dict(WARNING, priority="warning")
    d = ResourceData({"term": [term], "critical": [CRITICAL]})
    result = expand_nrql_terms(d, "static")
    assert [t.priority for t in result] == ["WARNING"]


def test_expand_terms_collects_errors():
    bad = {"threshold": 1, "threshold_occurrences": "ALL", "operator": "above"}
    d = ResourceData({"term": [bad, bad]})
    with pytest.raises(ValueError) as exc:
        expand_nrql_terms(d, "static")
    message = "unable to expand NRQL condition term: one of `duration` or " \
        "`threshold_duration` must be configured for block `term`"
    assert str(exc.value) == f"{message}, {message}"


def test_expand_nrql_evaluation_offset():
    d = ResourceData({"nrql": [{"query": QUERY, "evaluation_offset": 3}]})
    assert expand_create_nrql(d) == NrqlConditionQuery(query=QUERY, evaluation_offset=3)
    assert expand_update_nrql(d) == NrqlConditionQuery(query=QUERY, evaluation_offset=3)


def test_expand_nrql_since_value():
    d = ResourceData({"nrql": [{"query": QUERY, "since_value": "5", "evaluation_offset": 3}]})
    assert expand_create_nrql(d).evaluation_offset == 5
    bad = ResourceData({"nrql": [{"query": QUERY, "since_value": "five"}]})
    with pytest.raises(ValueError):
        expand_update_nrql(bad)


def test_expand_expiration_on():
    d = ResourceData(
        {
            "expiration_duration": 120,
            "open_violation_on_expiration": True,
            "close_violations_on_expiration": True,
        }
    )
    assert expand_expiration(d) == AlertsNrqlConditionExpiration(
        expiration_duration=120,
        close_violations_on_expiration=True,
        open_violation_on_expiration=True,
    )


def test_expand_expiration_zero_duration_unset():
    d = ResourceData({"expiration_duration": 0})
    assert expand_expiration(d) == AlertsNrqlConditionExpiration()


API_TERMS = [
    NrqlConditionTerm("ABOVE", "CRITICAL", 1.0, 600, "AT_LEAST_ONCE"),
    NrqlConditionTerm("BELOW", "WARNING", 10.9, 660, "AT_LEAST_ONCE"),
]


def test_flatten_terms_import():
    result = flatten_nrql_terms(API_TERMS, [])
    assert result == handle_import_flatten_nrql_terms(API_TERMS)
    assert result[0] == {
        "operator": "above",
        "priority": "critical",
        "threshold": 1.0,
        "threshold_duration": 600,
        "threshold_occurrences": "at_least_once",
    }


def test_flatten_terms_keeps_deprecated_shape():
    configured = [{"duration": 10, "time_function": "any", "operator": "above"}]
    result = flatten_nrql_terms(API_TERMS, configured)
    assert result[0] == {
        "operator": "above",
        "priority": "critical",
        "threshold": 1.0,
        "duration": 10,
        "time_function": "any",
    }
    assert result[1] == {
        "operator": "below",
        "priority": "warning",
        "threshold": 10.9,
        "threshold_duration": 660,
        "threshold_occurrences": "at_least_once",
    }


def test_get_configured_terms_fills_missing_keys():
    result = get_configured_terms([{"operator": "above", "threshold": 1.0}])
    assert result == [
        {
            "operator": "above",
            "priority": None,
            "threshold": 1.0,
            "duration": None,
            "time_function": None,
            "threshold_duration": None,
            "threshold_occurrences": None,
        }
    ]