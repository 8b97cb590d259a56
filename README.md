# relicform

`relicform` converts monitoring resources between two shapes:

- **resource state**: the nested dicts and lists that a declarative
  configuration holds, kept in a `ResourceData` object, and
- **API structures**: dataclasses that describe alert policies, APM alert
  conditions, infrastructure and NRQL alert conditions, muting rules,
  applications, workload identifiers and dashboards.

Functions named `expand_*` read a `ResourceData` (or the plain dicts and
lists taken from it) and build API structures. Functions named
`flatten_*` take API structures and write them back into a
`ResourceData`, or return the dicts and lists that would be stored.

Invalid configuration raises `ValueError` with a message that names the
offending attribute. A few helpers that check element types
(`expand_channel_ids`, `expand_muting_rule_values`,
`expand_linked_entity_guids`) raise `TypeError` for a wrongly typed item.

## Installation

```
pip install relicform
```

Only the standard library is needed. To run the tests, install the
`test` extra and run pytest from the project directory:

```
pip install "relicform[test]"
pytest
```

## Resource state

```python
from relicform.structures import ResourceData

d = ResourceData({"nrql": [{"query": "SELECT count(*) FROM Transaction"}]}, resource_id="123")
d.set("name", "checkout latency")

d.get("name")              # "checkout latency"
d.get("nrql.0.query")      # dotted keys reach into nested lists and dicts
d.get_ok("runbook_url")    # (None, False): unset or zero-valued
d.get_ok_exists("enabled") # (value, True) only when set, even to a zero value
d.id                       # "123"
```

`set` accepts top-level keys only; setting `None` removes the key. Unset
keys fall back to the `defaults` mapping given to the constructor.

`HashSet` stands in for an unordered set attribute. Items are keyed by a
hash function (the first item added wins on a clash) and `to_list()`
returns them ordered by the text of their hash codes. `hash_string`
(CRC-32 of the UTF-8 text) and `hash_int` are the hash functions for
string and integer sets:

```python
from relicform.structures import HashSet, hash_string, expand_string_set

days = HashSet(hash_string)
days.add("MONDAY")
days.add("TUESDAY")
expand_string_set(days)   # the non-empty strings, in hash order
```

`expand_int_list`, `expand_int_set`, `expand_string_list` and
`expand_string_set` keep only the members of the matching type (and, for
strings, only non-empty ones).

## Examples

Workload identifiers:

```python
from relicform.ids import parse_workload_ids

ids = parse_workload_ids("12345:678:workload-guid")
ids.account_id, ids.id, ids.guid   # (12345, 678, "workload-guid")
str(ids)                           # "12345:678:workload-guid"
```

Both numeric parts must be 32-bit integers.

APM alert condition terms:

```python
from relicform.alert_condition import expand_alert_condition_terms

terms = expand_alert_condition_terms([
    {"duration": 5, "operator": "above", "priority": "critical",
     "threshold": 1.5, "time_function": "all"},
])
```

Infrastructure conditions are checked against their type by
`validate_attributes_for_type`, for example `event` is refused for
`infra_process_running`.

NRQL condition terms:

```python
from relicform.nrql_terms import expand_nrql_condition_term

term = expand_nrql_condition_term(
    {"threshold": 10.9, "threshold_duration": 300,
     "threshold_occurrences": "all", "operator": "above"},
    "static",
    "critical",
)
term.priority               # "CRITICAL"
term.threshold_occurrences  # "ALL"
```

A term needs exactly one of `duration` (minutes) and `threshold_duration`
(seconds), and exactly one of `time_function` and
`threshold_occurrences`; `baseline` and `outlier` conditions allow only
the `ABOVE` operator. `relicform.nrql_condition` builds whole create and
update inputs, including signal and expiration settings, and flattens a
fetched `NrqlAlertCondition` back into state.

Muting rule schedules:

```python
from relicform.muting_rule import expand_muting_rule_create_schedule

schedule = expand_muting_rule_create_schedule({
    "start_time": "2021-01-21T15:30:00",
    "time_zone": "America/Los_Angeles",
    "repeat": "weekly",
})
schedule.repeat   # "WEEKLY"
```

Times use the `%Y-%m-%dT%H:%M:%S` form, and `flatten_schedule` writes
them back the same way.

Dashboards:

```python
from relicform.dashboard_expand import expand_dashboard_input
from relicform.dashboard_flatten import flatten_dashboard_entity
```

`expand_dashboard_input(d, meta)` builds a `DashboardInput` from the
`page` blocks of a dashboard resource. Widget queries without an account
take `meta["account_id"]`. Bullet, funnel, heatmap, histogram, JSON and
stacked-bar widgets get a compact JSON `raw_configuration`.
`flatten_dashboard_entity(dashboard, d)` writes a fetched dashboard back
into state, and `find_dashboard_widget_filter_current_dashboard` with
`set_dashboard_widget_filter_current_dashboard_linked_entity` link bar,
pie and table widgets to the page they sit on. `relicform.dashboard_raw`
holds the dashboard dataclasses and handles dashboards whose widgets
carry a raw JSON configuration string and a visualization id.

## Modules

| Module | Covers |
| --- | --- |
| `relicform.structures` | `ResourceData`, `HashSet`, list and set expansion helpers |
| `relicform.ids` | workload composite identifiers |
| `relicform.policy` | alert policies, policy channels, application settings |
| `relicform.alert_condition` | APM alert conditions |
| `relicform.infra_condition` | infrastructure alert conditions and their validation |
| `relicform.muting_rule` | muting rules and their schedules |
| `relicform.nrql_terms` | NRQL terms, queries and expiration |
| `relicform.nrql_condition` | NRQL alert conditions and signals |
| `relicform.dashboard_raw` | dashboard structures and raw-widget dashboards |
| `relicform.dashboard_expand` | typed-widget dashboard expansion |
| `relicform.dashboard_flatten` | typed-widget dashboard flattening |

## What it does not do

`relicform` only converts data. It does not talk to any monitoring
service: there is no API client, no create, read, update or delete of
resources, no command-line tool and no stored state beyond the
`ResourceData` objects you hold in memory. Workloads are covered only as
far as their identifiers.