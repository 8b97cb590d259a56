"""Dashboard model, and raw-widget dashboards: configuration to API input and back."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from relicform.structures import ResourceData


@dataclass
class WidgetLayout:
    column: int = 0
    height: int = 0
    row: int = 0
    width: int = 0


@dataclass
class DashboardWidgetNRQLQuery:
    account_id: int = 0
    query: str = ""


@dataclass
class BillboardThreshold:
    alert_severity: str = ""
    value: float | None = None


@dataclass
class DashboardWidgetConfiguration:
    """Typed widget configuration; each kind is ``None`` when not in use."""

    area: list[DashboardWidgetNRQLQuery] | None = None
    bar: list[DashboardWidgetNRQLQuery] | None = None
    billboard: list[DashboardWidgetNRQLQuery] | None = None
    billboard_thresholds: list[BillboardThreshold] | None = None
    line: list[DashboardWidgetNRQLQuery] | None = None
    markdown: str | None = None
    pie: list[DashboardWidgetNRQLQuery] | None = None
    table: list[DashboardWidgetNRQLQuery] | None = None


@dataclass
class DashboardWidgetInput:
    id: str = ""
    title: str = ""
    layout: WidgetLayout = field(default_factory=WidgetLayout)
    linked_entity_guids: list[str] | None = None
    visualization_id: str = ""
    configuration: DashboardWidgetConfiguration = field(
        default_factory=DashboardWidgetConfiguration
    )
    raw_configuration: str = ""


@dataclass
class DashboardPageInput:
    name: str = ""
    description: str = ""
    guid: str = ""
    widgets: list[DashboardWidgetInput] = field(default_factory=list)


@dataclass
class DashboardInput:
    name: str = ""
    description: str = ""
    permissions: str = ""
    pages: list[DashboardPageInput] = field(default_factory=list)


@dataclass
class DashboardWidget:
    """A widget as returned by the API.

    Linked entities are GUID strings or objects with a ``guid`` attribute.
    """

    id: str = ""
    title: str = ""
    layout: WidgetLayout = field(default_factory=WidgetLayout)
    linked_entities: list[Any] = field(default_factory=list)
    visualization_id: str = ""
    configuration: DashboardWidgetConfiguration = field(
        default_factory=DashboardWidgetConfiguration
    )
    raw_configuration: str = ""


@dataclass
class DashboardPage:
    guid: str = ""
    name: str = ""
    description: str = ""
    widgets: list[DashboardWidget] = field(default_factory=list)


@dataclass
class DashboardEntity:
    account_id: int = 0
    guid: str = ""
    name: str = ""
    permalink: str = ""
    permissions: str = ""
    description: str = ""
    pages: list[DashboardPage] = field(default_factory=list)


@dataclass
class DashboardUpdateResult:
    entity_result: DashboardEntity = field(default_factory=DashboardEntity)


def expand_dashboard_raw_input(d: ResourceData, meta: Any = None) -> DashboardInput:
    dashboard = DashboardInput(
        name=d.get("name") or "",
        pages=expand_dashboard_raw_page_input(d.get("page") or [], meta),
        permissions=(d.get("permissions") or "").upper(),
    )
    description, ok = d.get_ok("description")
    if ok:
        dashboard.description = description
    return dashboard


def expand_dashboard_raw_page_input(
    pages: list[dict[str, Any]], meta: Any = None
) -> list[DashboardPageInput]:
    expanded = []
    for p in pages:
        if "name" not in p:
            raise ValueError("name required for dashboard page")
        page = DashboardPageInput(name=p["name"])
        if "description" in p:
            page.description = p["description"]
        # A GUID is present when updating an existing page.
        if "guid" in p:
            page.guid = p["guid"]
        for properties in p.get("widget") or []:
            widget = expand_dashboard_raw_widget_input(properties, meta)
            if "configuration" in properties:
                widget.raw_configuration = properties["configuration"]
            if "visualization_id" in properties:
                widget.visualization_id = properties["visualization_id"]
            page.widgets.append(widget)
        expanded.append(page)
    return expanded


def expand_dashboard_raw_widget_input(
    widget: dict[str, Any], meta: Any = None
) -> DashboardWidgetInput:
    """Expand the properties shared by every widget kind."""
    result = DashboardWidgetInput()
    if "id" in widget:
        result.id = widget["id"]
    if "column" in widget:
        result.layout.column = widget["column"]
    if "height" in widget:
        result.layout.height = widget["height"]
    if "row" in widget:
        result.layout.row = widget["row"]
    if "width" in widget:
        result.layout.width = widget["width"]
    if "title" in widget:
        result.title = widget["title"]
    if "linked_entity_guids" in widget:
        result.linked_entity_guids = expand_linked_entity_guids(widget["linked_entity_guids"])
    return result


def expand_linked_entity_guids(guids: list[Any]) -> list[str]:
    for guid in guids:
        if not isinstance(guid, str):
            raise TypeError(f"entity GUID {guid!r} is not a string")
    return list(guids)


def flatten_linked_entity_guids(linked_entities: list[Any]) -> list[str]:
    return [str(getattr(entity, "guid", entity)) for entity in linked_entities]


def _flatten_entity_common(dashboard: DashboardEntity, d: ResourceData) -> None:
    d.set("account_id", dashboard.account_id)
    d.set("guid", dashboard.guid)
    d.set("name", dashboard.name)
    d.set("permissions", dashboard.permissions.lower())
    if dashboard.description:
        d.set("description", dashboard.description)
    if dashboard.pages:
        d.set("page", flatten_dashboard_raw_page(dashboard.pages))


def flatten_dashboard_raw_entity(dashboard: DashboardEntity, d: ResourceData) -> None:
    d.set("permalink", dashboard.permalink)
    _flatten_entity_common(dashboard, d)


def flatten_dashboard_raw_update_result(
    result: DashboardUpdateResult | None, d: ResourceData
) -> None:
    if result is None:
        raise ValueError("can not flatten nil DashboardUpdateResult")
    _flatten_entity_common(result.entity_result, d)


def flatten_dashboard_raw_page(pages: list[DashboardPage]) -> list[dict[str, Any]]:
    out = []
    for page in pages:
        m: dict[str, Any] = {"guid": page.guid, "name": page.name}
        if page.description:
            m["description"] = page.description
        for widget in page.widgets:
            widget_type, flattened = flatten_dashboard_raw_widget(widget)
            if widget_type:
                m.setdefault(widget_type, []).append(flattened)
        out.append(m)
    return out


def flatten_dashboard_raw_widget(widget: DashboardWidget) -> tuple[str, dict[str, Any]]:
    out: dict[str, Any] = {
        "id": widget.id,
        "column": widget.layout.column,
        "height": widget.layout.height,
        "row": widget.layout.row,
        "width": widget.layout.width,
    }
    if widget.title:
        out["title"] = widget.title
    if widget.linked_entities:
        out["linked_entity_guids"] = flatten_linked_entity_guids(widget.linked_entities)
    out["visualization_id"] = widget.visualization_id
    if widget.raw_configuration:
        out["configuration"] = widget.raw_configuration
    return "widget", out