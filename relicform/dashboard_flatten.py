"""Typed-widget dashboards: API objects to configuration state."""

from __future__ import annotations

import json
import logging
from typing import Any

from relicform.dashboard_raw import (
    DashboardEntity,
    DashboardPage,
    DashboardUpdateResult,
    DashboardWidget,
    DashboardWidgetNRQLQuery,
    flatten_linked_entity_guids,
)
from relicform.structures import ResourceData

logger = logging.getLogger(__name__)

SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_WARNING = "WARNING"

# Widget kinds that may link to the dashboard page they sit on.
SELF_LINKING_WIDGETS = ("widget_bar", "widget_pie", "widget_table")

# Visualizations configured through typed NRQL queries, and their widget kinds.
_TYPED_QUERY_WIDGETS = {
    "viz.area": ("widget_area", "area"),
    "viz.bar": ("widget_bar", "bar"),
    "viz.line": ("widget_line", "line"),
    "viz.pie": ("widget_pie", "pie"),
    "viz.table": ("widget_table", "table"),
}

# Visualizations configured through raw JSON holding only NRQL queries.
_RAW_QUERY_WIDGETS = {
    "viz.funnel": "widget_funnel",
    "viz.heatmap": "widget_heatmap",
    "viz.histogram": "widget_histogram",
    "viz.json": "widget_json",
    "viz.stacked-bar": "widget_stacked_bar",
}


class _BadRawConfiguration(Exception):
    """Raised when a raw widget configuration does not decode."""


def _decode_queries(raw: Any) -> list[DashboardWidgetNRQLQuery]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise _BadRawConfiguration("nrqlQueries is not a list")
    queries = []
    for item in raw:
        if item is None:
            queries.append(DashboardWidgetNRQLQuery())
            continue
        if not isinstance(item, dict):
            raise _BadRawConfiguration("query is not an object")
        account_id = item.get("accountId", 0)
        query = item.get("query", "")
        if account_id is None:
            account_id = 0
        if query is None:
            query = ""
        if isinstance(account_id, bool) or not isinstance(account_id, int):
            raise _BadRawConfiguration("accountId is not an integer")
        if not isinstance(query, str):
            raise _BadRawConfiguration("query is not a string")
        queries.append(DashboardWidgetNRQLQuery(account_id=account_id, query=query))
    return queries


def _decode_raw(raw: str) -> dict[str, Any]:
    try:
        cfg = json.loads(raw)
    except (ValueError, TypeError) as err:
        raise _BadRawConfiguration(str(err)) from err
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise _BadRawConfiguration("configuration is not an object")
    return cfg


def _flatten_raw_queries(widget: DashboardWidget, out: dict[str, Any]) -> None:
    if not widget.raw_configuration:
        return
    try:
        cfg = _decode_raw(widget.raw_configuration)
        queries = _decode_queries(cfg.get("nrqlQueries"))
    except _BadRawConfiguration:
        return
    out["nrql_query"] = flatten_dashboard_widget_nrql_query(queries)


def _flatten_raw_bullet(widget: DashboardWidget, out: dict[str, Any]) -> None:
    if not widget.raw_configuration:
        return
    try:
        cfg = _decode_raw(widget.raw_configuration)
        limit = cfg.get("limit", 0.0)
        if limit is None:
            limit = 0.0
        if isinstance(limit, bool) or not isinstance(limit, (int, float)):
            raise _BadRawConfiguration("limit is not a number")
        queries = _decode_queries(cfg.get("nrqlQueries"))
    except _BadRawConfiguration:
        return
    out["limit"] = float(limit)
    out["nrql_query"] = flatten_dashboard_widget_nrql_query(queries)


def _flatten_entity_common(dashboard: DashboardEntity, d: ResourceData) -> None:
    d.set("account_id", dashboard.account_id)
    d.set("guid", dashboard.guid)
    d.set("name", dashboard.name)
    d.set("permissions", dashboard.permissions.lower())
    if dashboard.description:
        d.set("description", dashboard.description)
    if dashboard.pages:
        d.set("page", flatten_dashboard_page(dashboard.pages))


def flatten_dashboard_entity(dashboard: DashboardEntity, d: ResourceData) -> None:
    """Write a dashboard read from the API into the resource state."""
    d.set("permalink", dashboard.permalink)
    _flatten_entity_common(dashboard, d)


def flatten_dashboard_update_result(
    result: DashboardUpdateResult | None, d: ResourceData
) -> None:
    """Write the dashboard returned by an update into the resource state."""
    if result is None:
        raise ValueError("can not flatten nil DashboardUpdateResult")
    _flatten_entity_common(result.entity_result, d)


def flatten_dashboard_page(pages: list[DashboardPage]) -> list[dict[str, Any]]:
    out = []
    for page in pages:
        m: dict[str, Any] = {"guid": page.guid, "name": page.name}
        if page.description:
            m["description"] = page.description
        for widget in page.widgets:
            widget_type, flattened = flatten_dashboard_widget(widget, page.guid)
            if widget_type:
                m.setdefault(widget_type, []).append(flattened)
        out.append(m)
    return out


def flatten_dashboard_widget(
    widget: DashboardWidget, page_guid: str
) -> tuple[str, dict[str, Any]]:
    """Return the widget kind and its flattened attributes; the kind is empty when unknown."""
    out: dict[str, Any] = {
        "id": widget.id,
        "column": widget.layout.column,
        "height": widget.layout.height,
        "row": widget.layout.row,
        "width": widget.layout.width,
    }
    if widget.title:
        out["title"] = widget.title

    # Linked entities are supported by faceted widgets only.
    if widget.linked_entities:
        out["linked_entity_guids"] = flatten_linked_entity_guids(widget.linked_entities)

    linked = out.get("linked_entity_guids")
    filter_current_dashboard = bool(linked) and len(linked) == 1 and page_guid in linked

    viz = widget.visualization_id
    cfg = widget.configuration
    widget_type = ""

    if viz in _TYPED_QUERY_WIDGETS:
        widget_type, attr = _TYPED_QUERY_WIDGETS[viz]
        queries = getattr(cfg, attr)
        if queries:
            out["nrql_query"] = flatten_dashboard_widget_nrql_query(queries)
        if widget_type in SELF_LINKING_WIDGETS:
            out["filter_current_dashboard"] = filter_current_dashboard
    elif viz == "viz.billboard":
        widget_type = "widget_billboard"
        if cfg.billboard:
            out["nrql_query"] = flatten_dashboard_widget_nrql_query(cfg.billboard)
        for threshold in cfg.billboard_thresholds or []:
            if threshold.alert_severity == SEVERITY_CRITICAL:
                out["critical"] = threshold.value
            elif threshold.alert_severity == SEVERITY_WARNING:
                out["warning"] = threshold.value
    elif viz == "viz.bullet":
        widget_type = "widget_bullet"
        _flatten_raw_bullet(widget, out)
    elif viz in _RAW_QUERY_WIDGETS:
        widget_type = _RAW_QUERY_WIDGETS[viz]
        _flatten_raw_queries(widget, out)
    elif viz == "viz.markdown":
        widget_type = "widget_markdown"
        if cfg.markdown:
            out["text"] = cfg.markdown

    return widget_type, out


def flatten_dashboard_widget_nrql_query(
    queries: list[DashboardWidgetNRQLQuery],
) -> list[dict[str, Any]]:
    return [{"account_id": q.account_id, "query": q.query} for q in queries]


def find_dashboard_widget_filter_current_dashboard(d: ResourceData) -> list[dict[str, Any]]:
    """Find widgets with ``filter_current_dashboard`` set, by page, title and position."""
    widget_list: list[dict[str, Any]] = []
    for page_index, page in enumerate(d.get("page") or []):
        for widget_type in SELF_LINKING_WIDGETS:
            if widget_type not in page:
                continue
            for widget in page[widget_type] or []:
                if not widget.get("filter_current_dashboard"):
                    continue
                if widget.get("linked_entity_guids"):
                    raise ValueError(
                        "err: filter_current_dashboard can't be set if "
                        "linked_entity_guids is configured"
                    )
                unique: dict[str, Any] = {}
                for key in ("title", "row", "column"):
                    if key in widget:
                        unique[key] = widget[key]
                unique["page"] = page_index
                widget_list.append(unique)
    return widget_list


def set_dashboard_widget_filter_current_dashboard_linked_entity(
    d: ResourceData, filter_widgets: list[dict[str, Any]]
) -> None:
    """Link the found widgets to the GUID of the page they sit on."""
    if not filter_widgets:
        logger.info("Empty list of widgets to filter")
        return

    pages = d.get("page") or []
    for page_index, page in enumerate(pages):
        for widget_type in SELF_LINKING_WIDGETS:
            if widget_type not in page:
                continue
            for widget in page[widget_type] or []:
                for found in filter_widgets:
                    if found.get("page") != page_index:
                        continue
                    if (
                        widget.get("title") == found.get("title")
                        and widget.get("column") == found.get("column")
                        and widget.get("row") == found.get("row")
                    ):
                        widget["linked_entity_guids"] = [page["guid"]]

    d.set("page", pages)