"""Writing SLO rules as standard Prometheus rule group YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Optional, TextIO, Union

import yaml

from slothstore.model import PromRule, PromRuleGroup, PromSLO, PromSLORules

VERSION = "dev"

_DISCLAIMER = f"""
---
# Code generated by Sloth ({VERSION}).
# DO NOT EDIT.

"""


class NoSLORulesError(ValueError):
    """Raised when there are no rules at all to store."""

    def __init__(self, message: str = "0 SLO Prometheus rules generated") -> None:
        super().__init__(message)


def add_disclaimer(data: str) -> str:
    """Prefix generated YAML with the "generated, do not edit" header."""
    return _DISCLAIMER + data


_DURATION_UNITS = (
    ("y", 1000 * 60 * 60 * 24 * 365, True),
    ("w", 1000 * 60 * 60 * 24 * 7, True),
    ("d", 1000 * 60 * 60 * 24, False),
    ("h", 1000 * 60 * 60, False),
    ("m", 1000 * 60, False),
    ("s", 1000, False),
    ("ms", 1, False),
)


def format_duration(seconds: Union[timedelta, float, int]) -> str:
    """Format a duration the way Prometheus does (e.g. ``42m``, ``1h30m``, ``4w``).

    Years and weeks are used only when they divide the duration exactly.
    """
    if isinstance(seconds, timedelta):
        ms = int(seconds / timedelta(milliseconds=1))
    else:
        ms = int(seconds * 1000)
    if ms == 0:
        return "0s"
    parts = []
    for unit, mult, exact in _DURATION_UNITS:
        if exact and ms % mult != 0:
            continue
        value = ms // mult
        if value > 0:
            parts.append(f"{value}{unit}")
            ms -= value * mult
    return "".join(parts)


class _RulesDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    style = "|" if "\n" in value else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", value, style=style)


_RulesDumper.add_representer(str, _represent_str)


def _rule_to_yaml(rule: PromRule) -> dict[str, Any]:
    doc: dict[str, Any] = {}
    if rule.record:
        doc["record"] = rule.record
    if rule.alert:
        doc["alert"] = rule.alert
    doc["expr"] = rule.expr
    if rule.for_duration:
        doc["for"] = format_duration(rule.for_duration)
    if rule.keep_firing_for:
        doc["keep_firing_for"] = format_duration(rule.keep_firing_for)
    if rule.labels:
        doc["labels"] = dict(sorted(rule.labels.items()))
    if rule.annotations:
        doc["annotations"] = dict(sorted(rule.annotations.items()))
    return doc


def _group_to_yaml(name: str, group: PromRuleGroup) -> dict[str, Any]:
    doc: dict[str, Any] = {"name": name}
    if group.interval:
        doc["interval"] = format_duration(group.interval)
    doc["rules"] = [_rule_to_yaml(rule) for rule in group.rules]
    return doc


@dataclass
class StdPrometheusStorageSLO:
    """An SLO with its generated rules, ready to be stored."""

    slo: PromSLO = field(default_factory=PromSLO)
    rules: PromSLORules = field(default_factory=PromSLORules)


class StdPrometheusGroupedRulesYAMLRepo:
    """Writes SLO recording and alerting rules as Prometheus rule groups in YAML."""

    def __init__(self, writer: TextIO, logger: Optional[logging.Logger] = None) -> None:
        self._writer = writer
        self._logger = logger or logging.getLogger(__name__)

    def store_slos(self, slos: Iterable[StdPrometheusStorageSLO]) -> None:
        """Write one group per non-empty rule set of every SLO.

        Raises ValueError when no SLOs are given and NoSLORulesError when the
        SLOs hold no rules at all.
        """
        slos = list(slos)
        if not slos:
            raise ValueError("slo rules required")

        groups = []
        for item in slos:
            named_groups = (
                (f"sloth-slo-sli-recordings-{item.slo.id}", item.rules.sli_error_rec_rules),
                (f"sloth-slo-meta-recordings-{item.slo.id}", item.rules.metadata_rec_rules),
                (f"sloth-slo-alerts-{item.slo.id}", item.rules.alert_rules),
            )
            groups.extend(
                _group_to_yaml(name, group) for name, group in named_groups if group.rules
            )

        # An empty output is most likely a mistake (typos, misconfig, too many disabled).
        if not groups:
            raise NoSLORulesError()

        body = yaml.dump(
            {"groups": groups},
            Dumper=_RulesDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
        self._writer.write(add_disclaimer(body))
        self._logger.info("Prometheus rules written (groups=%d)", len(groups))