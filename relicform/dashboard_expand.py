"""Typed-widget dashboards: configuration to API input."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from relicform.dashboard_raw import (
    BillboardThreshold,
    DashboardInput,
    DashboardPageInput,
    DashboardWidgetInput,
    DashboardWidgetNRQLQuery,
    expand_dashboard_raw_widget_input,
)
from relicform.structures import ResourceData

SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_WARNING = "WARNING"

# Widget kinds configured through NRQL queries only, and the configuration field each fills.
_QUERY_WIDGETS = {
    "widget_area": "area",
    "widget_bar": "bar",
    "widget_line": "line",
    "widget_pie": "pie",
    "widget_table": "table",
}

# Widget kinds sent as raw JSON configuration, with their visualization IDs.
_RAW_WIDGETS = {
    "widget_bullet": "viz.bullet",
    "widget_funnel": "viz.funnel",
    "widget_heatmap": "viz.heatmap",
    "widget_histogram": "viz.histogram",
    "widget_json": "viz.json",
    "widget_stacked_bar": "viz.stacked-bar",
}

# The order in which widget kinds are read from a page.
_WIDGET_ORDER = (
    "widget_area",
    "widget_bar",
    "widget_billboard",
    "widget_bullet",
    "widget_funnel",
    "widget_heatmap",
    "widget_histogram",
    "widget_line",
    "widget_markdown",
    "widget_pie",
    "widget_table",
    "widget_json",
    "widget_stacked_bar",
)


def _encode(value: Any) -> str:
    """Encode compactly, escaping HTML-significant characters inside strings."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escape in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escape)
    return text


def _number(value: float) -> float | int:
    if value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _queries_json(queries: list[DashboardWidgetNRQLQuery] | None) -> list[dict[str, Any]] | None:
    if queries is None:
        return None
    return [{"accountId": q.account_id, "query": q.query} for q in queries]


def expand_dashboard_input(d: ResourceData, meta: Any = None) -> DashboardInput:
    dashboard = DashboardInput(
        name=d.get("name") or "",
        pages=expand_dashboard_page_input(d, d.get("page") or [], meta),
        permissions=(d.get("permissions") or "").upper(),
    )
    description, ok = d.get_ok("description")
    if ok:
        dashboard.description = description
    return dashboard


def _expand_widget(
    page_index: int,
    widget_index: int,
    kind: str,
    cfg: dict[str, Any],
    d: ResourceData,
    meta: Any,
) -> DashboardWidgetInput:
    widget = expand_dashboard_widget_input(cfg, meta)
    if kind in _QUERY_WIDGETS:
        setattr(
            widget.configuration,
            _QUERY_WIDGETS[kind],
            expand_dashboard_nrql_widget_configuration_input(cfg, meta),
        )
    elif kind == "widget_billboard":
        queries, thresholds = expand_dashboard_billboard_widget_configuration_input(
            d, cfg, meta, page_index, widget_index
        )
        widget.configuration.billboard = queries
        widget.configuration.billboard_thresholds = thresholds
    elif kind == "widget_markdown":
        widget.configuration.markdown = expand_dashboard_markdown_widget_configuration_input(
            cfg, meta
        )
    elif kind == "widget_bullet":
        widget.raw_configuration = expand_dashboard_bullet_widget_raw_configuration_input(
            cfg, meta
        )
        widget.visualization_id = _RAW_WIDGETS[kind]
    else:
        widget.raw_configuration = expand_dashboard_queries_raw_configuration_input(cfg, meta)
        widget.visualization_id = _RAW_WIDGETS[kind]
    return widget


def expand_dashboard_page_input(
    d: ResourceData, pages: list[dict[str, Any]], meta: Any = None
) -> list[DashboardPageInput]:
    expanded = []
    for page_index, p in enumerate(pages):
        if "name" not in p:
            raise ValueError("name required for dashboard page")
        page = DashboardPageInput(name=p["name"])
        if "description" in p:
            page.description = p["description"]
        # A GUID is present when updating an existing page.
        if "guid" in p:
            page.guid = p["guid"]
        for kind in _WIDGET_ORDER:
            if kind not in p:
                continue
            for widget_index, cfg in enumerate(p[kind] or []):
                page.widgets.append(_expand_widget(page_index, widget_index, kind, cfg, d, meta))
        expanded.append(page)
    return expanded


def expand_dashboard_widget_input(widget: dict[str, Any], meta: Any = None) -> DashboardWidgetInput:
    """Expand the properties shared by every widget kind, not its configuration."""
    return expand_dashboard_raw_widget_input(widget, meta)


def expand_dashboard_widget_nrql_query_input(
    queries: list[dict[str, Any]], meta: Any = None
) -> list[DashboardWidgetNRQLQuery]:
    """Expand NRQL queries, taking the account from ``meta`` when none is configured."""
    defaults: Mapping[str, Any] = meta if isinstance(meta, Mapping) else {}
    expanded = []
    for q in queries:
        query = DashboardWidgetNRQLQuery()
        if "account_id" in q:
            query.account_id = q["account_id"]
        if query.account_id < 1 and "account_id" in defaults:
            query.account_id = defaults["account_id"]
        if "query" in q:
            query.query = q["query"]
        expanded.append(query)
    return expanded


def expand_dashboard_nrql_widget_configuration_input(
    widget: dict[str, Any], meta: Any = None
) -> list[DashboardWidgetNRQLQuery] | None:
    """Expand the queries of a query-only widget, or ``None`` when it has none configured."""
    if "nrql_query" not in widget:
        return None
    return expand_dashboard_widget_nrql_query_input(widget["nrql_query"], meta)


def expand_dashboard_markdown_widget_configuration_input(
    widget: dict[str, Any], meta: Any = None
) -> str | None:
    if "text" not in widget:
        return None
    return widget["text"]


def expand_dashboard_billboard_widget_configuration_input(
    d: ResourceData,
    widget: dict[str, Any],
    meta: Any,
    page_index: int,
    widget_index: int,
) -> tuple[list[DashboardWidgetNRQLQuery], list[BillboardThreshold]]:
    """Return the billboard's queries and its thresholds, critical first."""
    queries: list[DashboardWidgetNRQLQuery] = []
    if "nrql_query" in widget:
        queries = expand_dashboard_widget_nrql_query_input(widget["nrql_query"], meta)

    thresholds: list[BillboardThreshold] = []
    for key, severity in (("critical", SEVERITY_CRITICAL), ("warning", SEVERITY_WARNING)):
        _, ok = d.get_ok(f"page.{page_index}.widget_billboard.{widget_index}.{key}")
        if ok:
            if key in widget:
                thresholds.append(BillboardThreshold(severity, float(widget[key])))
        else:
            thresholds.append(BillboardThreshold(severity, None))
    return queries, thresholds


def expand_dashboard_bullet_widget_raw_configuration_input(
    widget: dict[str, Any], meta: Any = None
) -> str:
    cfg: dict[str, Any] = {}
    queries = None
    if "nrql_query" in widget:
        queries = expand_dashboard_widget_nrql_query_input(widget["nrql_query"], meta)
    limit = float(widget.get("limit") or 0.0)
    if limit != 0:
        cfg["limit"] = _number(limit)
    cfg["nrqlQueries"] = _queries_json(queries)
    return _encode(cfg)


def expand_dashboard_queries_raw_configuration_input(
    widget: dict[str, Any], meta: Any = None
) -> str:
    """Encode the queries of a raw-configured widget as JSON."""
    queries = None
    if "nrql_query" in widget:
        queries = expand_dashboard_widget_nrql_query_input(widget["nrql_query"], meta)
    return _encode({"nrqlQueries": _queries_json(queries)})


_ExpandFunc = Callable[[dict[str, Any], Any], Any]