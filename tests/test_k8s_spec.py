from datetime import timedelta

import pytest

from slothstore.k8s_spec import K8sSlothPrometheusYAMLSpecLoader
from slothstore.model import (
    NotFoundError,
    PromAlertMeta,
    PromSLI,
    PromSLIEvents,
    PromSLIRaw,
    PromSLO,
    PromSLOPluginMetadata,
    SLIPlugin,
    SpecError,
)

WINDOW = timedelta(days=30)


class MemPluginsRepo:
    def __init__(self, plugins=None):
        self._plugins = plugins or {}

    def get_sli_plugin(self, plugin_id):
        try:
            return self._plugins[plugin_id]
        except KeyError:
            raise NotFoundError("unknown plugin") from None


def _loader(plugins=None):
    return K8sSlothPrometheusYAMLSpecLoader(MemPluginsRepo(plugins), WINDOW)


FAILING_SPECS = {
    "empty": "",
    "wrong yaml": ":",
    "invalid format": """
service: test-svc
slos:
- name: something
""",
    "sloth spec": """
service: test-svc
version: "prometheus/v1"
slos: []
""",
    "other kubernetes type": """
apiVersion: v1
kind: Pod
metadata:
  name: sloth-slo-home-wifi
  namespace: monitoring
  labels:
    prometheus: prometheus
    role: alert-rules
    app: sloth
""",
    "without slos": """
apiVersion: sloth.slok.dev/v1
kind: PrometheusServiceLevel
metadata:
  name: sloth-slo-home-wifi
  namespace: monitoring
  labels:
    prometheus: prometheus
    role: alert-rules
    app: sloth
spec:
  service: "home-wifi"
""",
    "unknown sli plugin": """
apiVersion: sloth.slok.dev/v1
kind: PrometheusServiceLevel
metadata:
  name: k8s-test-svc
  namespace: test-ns
spec:
  service: test-svc
  slos:
    - name: "slo"
      objective: 99
      sli:
        plugin:
          id: unknown_plugin
      alerting:
        page_alert:
          disable: true
        ticket_alert:
          disable: true
""",
}


@pytest.mark.parametrize("spec", list(FAILING_SPECS.values()), ids=list(FAILING_SPECS))
def test_invalid_specs_fail(spec):
    with pytest.raises(SpecError):
        _loader().load_spec(spec)


def _plugin_func(meta, labels, options):
    return (
        f'plugin_raw_expr{{service="{meta["service"]}",slo="{meta["slo"]}",'
        f'objective="{meta["objective"]}",gk1="{labels["gk1"]}",'
        f'k1="{options["k1"]}",k2="{options["k2"]}"}}'
    )


def test_sli_plugin_is_used():
    spec = """
apiVersion: sloth.slok.dev/v1
kind: PrometheusServiceLevel
metadata:
  name: k8s-test-svc
  namespace: test-ns
spec:
  service: test-svc
  labels:
    gk1: gv1
  slos:
    - name: "slo-test"
      objective: 99
      sli:
        plugin:
          id: test_plugin
          options:
            k1: v1
            k2: "true"
      alerting:
        pageAlert:
          disable: true
        ticketAlert:
          disable: true
"""
    loader = _loader({"test_plugin": SLIPlugin(id="test_plugin", func=_plugin_func)})
    group = loader.load_spec(spec)

    assert group.slos == [
        PromSLO(
            id="test-svc-slo-test",
            name="slo-test",
            service="test-svc",
            time_window=WINDOW,
            labels={"gk1": "gv1"},
            sli=PromSLI(
                raw=PromSLIRaw(
                    error_ratio_query='plugin_raw_expr{service="test-svc",slo="slo-test",'
                    'objective="99.000000",gk1="gv1",k1="v1",k2="true"}'
                )
            ),
            objective=99,
            page_alert_meta=PromAlertMeta(disable=True),
            ticket_alert_meta=PromAlertMeta(disable=True),
            plugins=[],
        )
    ]
    assert group.original_source["metadata"] == {"name": "k8s-test-svc", "namespace": "test-ns"}
    assert group.original_source["kind"] == "PrometheusServiceLevel"


def test_sli_plugin_error_fails():
    def failing(meta, labels, options):
        raise RuntimeError("something")

    spec = """
apiVersion: sloth.slok.dev/v1
kind: PrometheusServiceLevel
metadata:
  name: k8s-test-svc
  namespace: test-ns
spec:
  service: test-svc
  slos:
    - name: "slo"
      objective: 99
      sli:
        plugin:
          id: test_plugin
      alerting:
        page_alert:
          disable: true
        ticket_alert:
          disable: true
"""
    loader = _loader({"test_plugin": SLIPlugin(id="test_plugin", func=failing)})
    with pytest.raises(SpecError, match="execution error"):
        loader.load_spec(spec)


CORRECT_SPEC = """
apiVersion: sloth.slok.dev/v1
kind: PrometheusServiceLevel
metadata:
  name: k8s-test-svc
  namespace: test-ns
  labels:
    lk1: lv1
    lk2: lv2
  annotations:
    ak1: av1
    ak2: av2
spec:
  service: "test-svc"
  labels:
    owner: "myteam"
  sloPlugins:
    chain:
      - id: test_plugin0
        priority: -100
        config: {"k1": 42}
      - id: test_plugin2
        config: {"k1": {"k2": "v2"}}
  slos:
    - name: "slo1"
      labels:
        category: test
      objective: 99.99999
      description: "This is a test."
      sli:
        events:
          errorQuery: test_expr_error_1
          totalQuery: test_expr_total_1
      alerting:
        name: testAlert
        labels:
          tier: "1"
        annotations:
          runbook: http://whatever.com
        pageAlert:
          labels:
            severity: slack
            channel: "#a-myteam"
          annotations:
            message: "This is very important."
        ticketAlert:
          labels:
            severity: slack
            channel: "#a-not-so-important"
          annotations:
            message: "This is not very important."
    - name: "slo2"
      labels:
        category: test2
      objective: 99.9
      sli:
        raw:
          errorRatioQuery: test_expr_ratio_2
      plugins:
        chain:
          - id: test_plugin1
            priority: 100
            config:
              k1: v1
              k2: true
      alerting:
        pageAlert:
          disable: true
        ticketAlert:
          disable: true
"""


def test_correct_spec_maps_models():
    group = _loader().load_spec(CORRECT_SPEC)

    group_plugins = [
        PromSLOPluginMetadata(id="test_plugin0", priority=-100, config='{"k1":42}'),
        PromSLOPluginMetadata(id="test_plugin2", config='{"k1":{"k2":"v2"}}'),
    ]
    assert group.slos == [
        PromSLO(
            id="test-svc-slo1",
            name="slo1",
            description="This is a test.",
            service="test-svc",
            time_window=WINDOW,
            sli=PromSLI(
                events=PromSLIEvents(
                    error_query="test_expr_error_1", total_query="test_expr_total_1"
                )
            ),
            objective=99.99999,
            labels={"owner": "myteam", "category": "test"},
            page_alert_meta=PromAlertMeta(
                name="testAlert",
                labels={"tier": "1", "severity": "slack", "channel": "#a-myteam"},
                annotations={
                    "message": "This is very important.",
                    "runbook": "http://whatever.com",
                },
            ),
            ticket_alert_meta=PromAlertMeta(
                name="testAlert",
                labels={"tier": "1", "severity": "slack", "channel": "#a-not-so-important"},
                annotations={
                    "message": "This is not very important.",
                    "runbook": "http://whatever.com",
                },
            ),
            plugins=group_plugins,
        ),
        PromSLO(
            id="test-svc-slo2",
            name="slo2",
            service="test-svc",
            time_window=WINDOW,
            sli=PromSLI(raw=PromSLIRaw(error_ratio_query="test_expr_ratio_2")),
            objective=99.9,
            labels={"owner": "myteam", "category": "test2"},
            page_alert_meta=PromAlertMeta(disable=True),
            ticket_alert_meta=PromAlertMeta(disable=True),
            plugins=group_plugins
            + [
                PromSLOPluginMetadata(
                    id="test_plugin1", priority=100, config='{"k1":"v1","k2":true}'
                )
            ],
        ),
    ]
    meta = group.original_source["metadata"]
    assert meta["labels"] == {"lk1": "lv1", "lk2": "lv2"}
    assert meta["annotations"] == {"ak1": "av1", "ak2": "av2"}
    assert group.original_source["spec"]["service"] == "test-svc"


def test_bytes_input_is_accepted():
    group = _loader().load_spec(CORRECT_SPEC.encode("utf-8"))
    assert [slo.id for slo in group.slos] == ["test-svc-slo1", "test-svc-slo2"]


IS_SPEC_TYPE_CASES = [
    ("", False),
    ("{", False),
    ("\napiVersion: sloth.slok.dev/v2\nkind: PrometheusServiceLevel\n", False),
    ("\napiVersion: sloth.slok.dev/v1\nkind: PrometheusService\n", False),
    ('\napiVersion: "sloth.slok.dev/v1"\nkind: "PrometheusServiceLevel"\n', True),
    ("\napiVersion: sloth.slok.dev/v1\nkind: PrometheusServiceLevel\n", True),
    ("\napiVersion: 'sloth.slok.dev/v1'\nkind: 'PrometheusServiceLevel'\n", True),
    (
        "\napiVersion:       sloth.slok.dev/v1\nkind:               PrometheusServiceLevel\n",
        True,
    ),
]


@pytest.mark.parametrize("spec, expected", IS_SPEC_TYPE_CASES)
def test_is_spec_type(spec, expected):
    assert _loader().is_spec_type(spec) is expected