"""Expand and flatten monitoring resource configuration between state and API structures."""

__version__ = "0.1.0"

__all__ = [
    "structures",
    "ids",
    "policy",
    "alert_condition",
    "infra_condition",
    "muting_rule",
    "dashboard_raw",
    "nrql_terms",
    "nrql_condition",
    "dashboard_expand",
    "dashboard_flatten",
]