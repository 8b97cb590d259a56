"""Alert policies, policy channel links and application settings."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from relicform.structures import HashSet, ResourceData

logger = logging.getLogger(__name__)

_ATOI = re.compile(r"[+-]?[0-9]+")


def _items(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, HashSet):
        return value.to_list()
    return list(value)


@dataclass
class AlertsPolicy:
    name: str = ""
    incident_preference: str = ""
    id: str = ""


@dataclass
class PolicyChannels:
    id: int = 0
    channel_ids: list[int] = field(default_factory=list)


@dataclass
class ApplicationSettings:
    app_apdex_threshold: float = 0.0
    end_user_apdex_threshold: float = 0.0
    enable_real_user_monitoring: bool = False


@dataclass
class Application:
    id: int = 0
    name: str = ""
    settings: ApplicationSettings = field(default_factory=ApplicationSettings)


def flatten_alert_policy(policy: AlertsPolicy, d: ResourceData, account_id: int) -> None:
    d.set("name", policy.name)
    d.set("incident_preference", policy.incident_preference)
    d.set("account_id", account_id)


def migrate_state_alert_policy_channel_v0_to_v1(raw_state: dict[str, Any]) -> dict[str, Any]:
    """Move ``channel_ids`` from a list to a set.

    The ids keep their type; repeated ids collapse to one, first occurrence kept.
    A new state mapping is returned and the given one is left untouched.
    """
    migrated = dict(raw_state)
    channel_ids = migrated.get("channel_ids")
    if channel_ids is not None:
        migrated["channel_ids"] = list(dict.fromkeys(_items(channel_ids)))
    return migrated


def expand_channel_ids(channel_ids: list[Any]) -> list[int]:
    ids = list(channel_ids)
    for value in ids:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"channel id {value!r} is not an integer")
    return ids


def expand_alert_policy_channels(d: ResourceData) -> PolicyChannels:
    channel_ids = _items(d.get("channel_ids"))
    if not channel_ids:
        raise ValueError("must provide channel_ids for resource newrelic_alert_policy_channel")
    return PolicyChannels(id=d.get("policy_id") or 0, channel_ids=expand_channel_ids(channel_ids))


def flatten_alert_policy_channels(d: ResourceData, policy_id: int, channel_ids: list[int]) -> None:
    d.set("policy_id", policy_id)
    _, configured = d.get_ok("channel_ids")
    if configured and channel_ids:
        d.set("channel_ids", channel_ids)
    # On import nothing is in state yet, so take what the API returned.
    if not configured:
        d.set("channel_ids", channel_ids)


def expand_application(d: ResourceData) -> Application:
    application = Application(name=d.get("name") or "")
    if _ATOI.fullmatch(d.id or ""):
        application.id = int(d.id)
    else:
        logger.error("expanding application, invalid id %r", d.id)
    application.settings = ApplicationSettings(
        app_apdex_threshold=float(d.get("app_apdex_threshold") or 0.0),
        end_user_apdex_threshold=float(d.get("end_user_apdex_threshold") or 0.0),
        enable_real_user_monitoring=bool(d.get("enable_real_user_monitoring")),
    )
    return application


def flatten_application(application: Application, d: ResourceData) -> None:
    d.id = str(application.id)
    d.set("name", application.name)
    d.set("app_apdex_threshold", application.settings.app_apdex_threshold)
    d.set("end_user_apdex_threshold", application.settings.end_user_apdex_threshold)
    d.set("enable_real_user_monitoring", application.settings.enable_real_user_monitoring)