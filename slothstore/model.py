"""Domain model shared by the spec loaders, the plugin repository and the rule writers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""


class SpecError(ValueError):
    """Raised when an SLO spec is missing, malformed or invalid."""


def merge_labels(*args: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Merge label mappings into a new dict; later mappings win on key clashes."""
    merged: dict[str, str] = {}
    for labels in args:
        if labels:
            merged.update(labels)
    return merged


@dataclass
class K8sMeta:
    """Simplified Kubernetes object metadata used when storing rules."""

    kind: str = ""
    api_version: str = ""
    name: str = ""
    uid: str = ""
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class PromSLIEvents:
    """SLI made of an error events query and a total events query."""

    error_query: str = ""
    total_query: str = ""


@dataclass
class PromSLIRaw:
    """SLI given directly as an error ratio query."""

    error_ratio_query: str = ""


@dataclass
class PromSLI:
    """An SLI: either raw or events based."""

    raw: Optional[PromSLIRaw] = None
    events: Optional[PromSLIEvents] = None


@dataclass
class PromAlertMeta:
    """Alert metadata for page or ticket alerts."""

    disable: bool = False
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class PromSLOPluginMetadata:
    """Reference to an SLO plugin with its configuration and priority."""

    id: str = ""
    config: Any = None
    priority: int = 0


@dataclass
class PromSLO:
    """A single Prometheus based SLO."""

    id: str = ""
    name: str = ""
    description: str = ""
    service: str = ""
    sli: PromSLI = field(default_factory=PromSLI)
    time_window: timedelta = timedelta(0)
    objective: float = 0.0
    labels: dict[str, str] = field(default_factory=dict)
    page_alert_meta: PromAlertMeta = field(default_factory=PromAlertMeta)
    ticket_alert_meta: PromAlertMeta = field(default_factory=PromAlertMeta)
    plugins: list[PromSLOPluginMetadata] = field(default_factory=list)


@dataclass
class PromSLOGroup:
    """A group of SLOs loaded from one spec, with the parsed original spec."""

    slos: list[PromSLO] = field(default_factory=list)
    original_source: Any = None


@dataclass
class PromRule:
    """A Prometheus recording or alerting rule."""

    record: str = ""
    alert: str = ""
    expr: str = ""
    for_duration: timedelta = timedelta(0)
    keep_firing_for: timedelta = timedelta(0)
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class PromRuleGroup:
    """A set of rules evaluated at a common interval (zero means default)."""

    interval: timedelta = timedelta(0)
    rules: list[PromRule] = field(default_factory=list)


@dataclass
class PromSLORules:
    """All the rules generated for one SLO."""

    sli_error_rec_rules: PromRuleGroup = field(default_factory=PromRuleGroup)
    metadata_rec_rules: PromRuleGroup = field(default_factory=PromRuleGroup)
    alert_rules: PromRuleGroup = field(default_factory=PromRuleGroup)


@dataclass
class SLORulesResult:
    """Final SLO rules result, stored in batches."""

    k8s_meta: K8sMeta = field(default_factory=K8sMeta)
    slo: PromSLO = field(default_factory=PromSLO)
    rules: PromSLORules = field(default_factory=PromSLORules)


@dataclass
class SLIPlugin:
    """An SLI plugin: called with (meta, labels, options) it returns a raw error ratio query."""

    id: str = ""
    func: Optional[Callable[[Mapping[str, str], Mapping[str, str], Mapping[str, str]], str]] = None


@dataclass
class SLOPlugin:
    """An SLO plugin identified by its ID."""

    id: str = ""
    func: Optional[Callable[..., Any]] = None