"""Load SLO specs into a common model, discover SLI/SLO plugins and write Prometheus rule-group YAML."""

__version__ = "0.1.0"

__all__ = [
    "model",
    "plugins",
    "prometheus_rules",
    "sloth_spec",
    "openslo",
    "k8s_spec",
]