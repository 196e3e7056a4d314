"""Loading of OpenSLO ``openslo/v1alpha`` YAML specs into the SLO model."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Mapping, Union

import yaml

from slothstore.model import (
    PromAlertMeta,
    PromSLI,
    PromSLIRaw,
    PromSLO,
    PromSLOGroup,
    SpecError,
)

API_VERSION = "openslo/v1alpha"

_KIND_RE = re.compile(r"""^kind: +['"]?SLO['"]? *$""", re.MULTILINE)
_API_VERSION_RE = re.compile(r"""^apiVersion: +['"]?openslo/v1alpha['"]? *$""", re.MULTILINE)

_SUPPORTED_SOURCES = ("prometheus", "sloth")


def _text(data: Union[str, bytes, None]) -> str:
    if data is None:
        return ""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return data


def _mapping(value: Any, what: str) -> Mapping[Any, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SpecError(f"{what} must be a mapping")
    return value


def _list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SpecError(f"{what} must be a list")
    return value


def _string(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SpecError(f"{what} must be a string")
    return value


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SpecError(f"{what} must be a number")
    return value


def _error_ratio_query(good: str, total: str) -> str:
    return (
        "\n"
        "  1 - (\n"
        "    (\n"
        f"      {good}\n"
        "    )\n"
        "    /\n"
        "    (\n"
        f"      {total}\n"
        "    )\n"
        "  )\n"
    )


def _validate_time_windows(windows: list[Any]) -> None:
    # Time windows are required by OpenSLO; only day based ones are supported.
    if not windows:
        return
    if len(windows) > 1:
        raise SpecError("only 1 time window is supported")
    unit = _string(_mapping(windows[0], "timeWindows[0]").get("unit"), "timeWindows[0].unit")
    if unit.lower() != "day":
        raise SpecError("only days based time windows are supported")


def _sli(objective: Mapping[Any, Any]) -> PromSLI:
    """Map ratio metrics (good/total) to a raw error ratio SLI (1 - good/total)."""
    ratio = objective.get("ratioMetrics")
    if ratio is None:
        raise SpecError("missing ratioMetrics")
    ratio = _mapping(ratio, "ratioMetrics")
    good = _mapping(ratio.get("good"), "ratioMetrics.good")
    total = _mapping(ratio.get("total"), "ratioMetrics.total")

    good_source = _string(good.get("source"), "good.source")
    total_source = _string(total.get("source"), "total.source")
    if good_source not in _SUPPORTED_SOURCES:
        raise SpecError("prometheus or sloth query ratio 'good' source is required")
    if total_source != "prometheus" and good_source != "sloth":
        raise SpecError("prometheus or sloth query ratio 'total' source is required")

    good_type = _string(good.get("queryType"), "good.queryType")
    total_type = _string(total.get("queryType"), "total.queryType")
    if good_type != "promql":
        raise SpecError(f"unsupported 'good' indicator query type: {good_type}")
    if total_type != "promql":
        raise SpecError(f"unsupported 'total' indicator query type: {total_type}")

    query = _error_ratio_query(
        _string(good.get("query"), "good.query"),
        _string(total.get("query"), "total.query"),
    )
    return PromSLI(raw=PromSLIRaw(error_ratio_query=query))


class OpenSLOYAMLSpecLoader:
    """Loads OpenSLO v1alpha SLO specs; each objective becomes one SLO."""

    def __init__(self, window_period: timedelta) -> None:
        self._window_period = window_period

    def is_spec_type(self, data: Union[str, bytes]) -> bool:
        """Tell whether the document is an OpenSLO v1alpha ``SLO`` object."""
        text = _text(data)
        return bool(_KIND_RE.search(text)) and bool(_API_VERSION_RE.search(text))

    def load_spec(self, data: Union[str, bytes]) -> PromSLOGroup:
        """Parse and map a spec; raises SpecError on any problem."""
        text = _text(data)
        if not text:
            raise SpecError("spec is required")

        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as err:
            raise SpecError(f"could not unmarshall YAML spec correctly: {err}") from err
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise SpecError("could not unmarshall YAML spec correctly: spec must be a mapping")

        if doc.get("apiVersion") != API_VERSION:
            raise SpecError(f"invalid spec version, should be {API_VERSION!r}")

        spec = _mapping(doc.get("spec"), "spec")
        objectives = _list(spec.get("objectives"), "objectives")
        if not objectives:
            raise SpecError("at least one SLO is required")

        windows = _list(spec.get("timeWindows"), "timeWindows")
        try:
            _validate_time_windows(windows)
        except SpecError as err:
            raise SpecError(f"invalid SLO time windows: {err}") from err

        try:
            slos = self._slos(doc, spec, objectives, windows)
        except SpecError as err:
            raise SpecError(f"could not map to model: {err}") from err

        return PromSLOGroup(slos=slos, original_source=doc)

    def _slos(
        self,
        doc: Mapping[Any, Any],
        spec: Mapping[Any, Any],
        objectives: list[Any],
        windows: list[Any],
    ) -> list[PromSLO]:
        service = _string(spec.get("service"), "spec.service")
        description = _string(spec.get("description"), "spec.description")
        name = _string(_mapping(doc.get("metadata"), "metadata").get("name"), "metadata.name")

        time_window = self._window_period
        if windows:
            count = _mapping(windows[0], "timeWindows[0]").get("count", 0)
            if isinstance(count, bool) or not isinstance(count, int):
                raise SpecError("timeWindows[0].count must be an integer")
            time_window = timedelta(days=count)

        slos = []
        for idx, raw in enumerate(objectives):
            objective = _mapping(raw, "objective")
            try:
                sli = _sli(objective)
            except SpecError as err:
                raise SpecError(f"could not map SLI: {err}") from err
            target = objective.get("target")
            if target is None:
                raise SpecError("missing objective target")
            slos.append(
                PromSLO(
                    id=f"{service}-{name}-{idx}",
                    name=f"{name}-{idx}",
                    service=service,
                    description=description,
                    time_window=time_window,
                    sli=sli,
                    # OpenSLO targets are ratios, the model uses percents.
                    objective=_number(target, "objective target") * 100,
                    page_alert_meta=PromAlertMeta(disable=True),
                    ticket_alert_meta=PromAlertMeta(disable=True),
                )
            )
        return slos