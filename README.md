# slothstore

Load service level objective (SLO) specifications into one common model, and
write generated Prometheus SLO rules out as YAML rule groups.

## What is in the package

- `slothstore.model`: dataclasses for the model (`PromSLO`, `PromSLOGroup`,
  `PromSLI`, `PromSLIRaw`, `PromSLIEvents`, `PromAlertMeta`,
  `PromSLOPluginMetadata`, `PromRule`, `PromRuleGroup`, `PromSLORules`,
  `K8sMeta`, `SLORulesResult`, `SLIPlugin`, `SLOPlugin`), the exceptions
  `SpecError` and `NotFoundError`, and `merge_labels(*mappings)`, which merges
  label dicts with later ones winning.
- Spec loaders. Each has `is_spec_type(data)`, which tells from the document's
  header lines whether it is of the loader's format, and `load_spec(data)`,
  which parses the YAML (given as `str` or `bytes`) and returns a
  `PromSLOGroup`. The parsed document is kept in `original_source`.
  - `slothstore.sloth_spec.SlothPrometheusYAMLSpecLoader` for
    `version: prometheus/v1` specs (snake_case fields such as `error_query`,
    `page_alert`, `slo_plugins`). The module also offers `map_slos(...)`, the
    mapping step on its own.
  - `slothstore.openslo.OpenSLOYAMLSpecLoader` for `apiVersion: openslo/v1alpha`,
    `kind: SLO` specs. Every objective becomes one SLO with ID
    `<service>-<name>-<index>`. Only `ratioMetrics` with `promql` queries are
    supported; they become a raw `1 - (good / total)` error ratio query. The
    target ratio is turned into a percent. At most one time window is allowed,
    and it must be in days; without one the loader's window period is used.
    Alerts are disabled.
  - `slothstore.k8s_spec.K8sSlothPrometheusYAMLSpecLoader` for Kubernetes
    `PrometheusServiceLevel` resources (`apiVersion: sloth.slok.dev/v1`, with
    camelCase fields such as `errorQuery`, `pageAlert`, `sloPlugins`).
- `slothstore.plugins.FilePluginRepo` walks one or more directory trees and
  picks every file whose path ends in `plugin.go`. It hands the file's text to
  an SLI loader and, if that raises, to an SLO loader. You supply both loaders
  as callables that return an `SLIPlugin` or an `SLOPlugin`. Files that neither
  loader accepts are logged and skipped. Plugins are served with
  `get_sli_plugin(id)`, `get_slo_plugin(id)`, `list_sli_plugins()` and
  `list_slo_plugins()`, and `reload()` runs the discovery again.
- `slothstore.prometheus_rules.StdPrometheusGroupedRulesYAMLRepo` writes, for
  every `StdPrometheusStorageSLO`, up to three rule groups to a text stream:
  `sloth-slo-sli-recordings-<id>`, `sloth-slo-meta-recordings-<id>` and
  `sloth-slo-alerts-<id>`. Empty rule sets are skipped. The output starts with
  a "generated code, do not edit" header (`add_disclaimer`). Durations are
  written in Prometheus style by `format_duration`, for example `42m` or `4w`.

## Installation

```
pip install slothstore
```

## Loading a spec

```python
from datetime import timedelta

from slothstore.sloth_spec import SlothPrometheusYAMLSpecLoader

spec = b"""
version: "prometheus/v1"
service: "myservice"
labels:
  owner: "myteam"
slos:
  - name: "requests-availability"
    objective: 99.9
    sli:
      events:
        error_query: sum(rate(http_requests_total{code=~"5.."}[{{.window}}]))
        total_query: sum(rate(http_requests_total[{{.window}}]))
    alerting:
      name: MyServiceHighErrorRate
      page_alert:
        labels:
          severity: page
      ticket_alert:
        disable: true
"""

loader = SlothPrometheusYAMLSpecLoader(plugins_repo=None, window_period=timedelta(days=30))
if loader.is_spec_type(spec):
    group = loader.load_spec(spec)
    for slo in group.slos:
        print(slo.id, slo.objective, slo.labels)
```

For a spec whose SLIs use `sli.plugin`, pass a repository with a
`get_sli_plugin(plugin_id)` method, for example a `FilePluginRepo`. The
plugin's function is called with `(meta, labels, options)`. `meta` holds
`service`, `slo` and `objective`, the objective formatted like `99.000000`.
The function returns the raw error ratio query.

## Loading plugins

```python
from slothstore.model import SLIPlugin, SLOPlugin
from slothstore.plugins import FilePluginRepo


def load_sli(source: str) -> SLIPlugin:
    ...  # build an SLIPlugin from the file text, or raise


def load_slo(source: str) -> SLOPlugin:
    ...  # build an SLOPlugin from the file text, or raise


repo = FilePluginRepo(load_sli, load_slo, "plugins/", "more-plugins/")
print(sorted(repo.list_sli_plugins()))
```

## Writing Prometheus rules

```python
import io

from slothstore.model import PromRule, PromRuleGroup, PromSLO, PromSLORules
from slothstore.prometheus_rules import (
    StdPrometheusGroupedRulesYAMLRepo,
    StdPrometheusStorageSLO,
)

out = io.StringIO()
repo = StdPrometheusGroupedRulesYAMLRepo(out)
repo.store_slos([
    StdPrometheusStorageSLO(
        slo=PromSLO(id="svc-slo"),
        rules=PromSLORules(
            sli_error_rec_rules=PromRuleGroup(
                rules=[PromRule(record="slo:sli_error:ratio_rate5m", expr="...")]
            )
        ),
    )
])
print(out.getvalue())
```

## Errors

- `SpecError` (a `ValueError`): the spec is empty, is not valid YAML, has the
  wrong version or type, has no SLOs, names an unknown SLI plugin, has a plugin
  that fails, or uses unsupported settings.
- `NotFoundError` (a `LookupError`): `FilePluginRepo` has no plugin with the
  given ID.
- `PluginLoadError`: a plugin tree cannot be walked or read, or two plugins
  share an ID.
- `ValueError`: `store_slos` was given no SLOs. `NoSLORulesError` (a
  `ValueError`): the SLOs given hold no rules at all.

## What this package does not do

- It does not generate the recording and alert rules from an SLO. It only
  loads specs into the model and writes rules that are already built.
- It does not talk to a Kubernetes API server and does not write
  Prometheus-operator `PrometheusRule` objects. Rules are written only as
  plain Prometheus rule-group YAML to a stream.
- It does not compile or run plugin source files itself. The loaders you pass
  to `FilePluginRepo` do that.
- It has no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```