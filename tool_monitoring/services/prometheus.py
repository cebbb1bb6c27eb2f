"""Prometheus text exposition of registered metrics.

See https://prometheus.io/docs/instrumenting/exposition_formats/
"""

from __future__ import annotations

import math
from typing import Iterable

from prometheus_client import CONTENT_TYPE_LATEST

from tool_monitoring.metrics.value import MetricValue
from tool_monitoring.services.registered_metric import RegisteredMetric

CONTENT_TYPE = CONTENT_TYPE_LATEST


def export(metrics: Iterable[RegisteredMetric]) -> str:
    """Render the metrics in the given order, separated by newlines, without a trailing newline."""
    return "\n".join(export_metric(metric) for metric in metrics)


def export_metric(metric: RegisteredMetric) -> str:
    """Render one metric with its ``# HELP`` and ``# TYPE`` lines followed by one line per value.

    Label validation errors raised while iterating the metric propagate.
    """
    name = metric.qualified_name
    lines = [
        f"# HELP {name} {_escape_help(metric.description)}",
        f"# TYPE {name} {metric.metric_type.value}",
    ]
    lines.extend(value_line(name, value) for value in metric)
    return "\n".join(lines)


def value_line(name: str, metric_value: MetricValue) -> str:
    value = format_value(metric_value.value)
    if not metric_value.label:
        return f"{name} {value}"
    pairs = ", ".join(
        f'{label_name}="{_escape_label_value(label_value)}"'
        for label_name, label_value in metric_value.label.items()
    )
    return f"{name}{{{pairs}}} {value}"


def format_value(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return repr(float(value))


def _escape_help(text: str) -> str:
    return text.replace("\\", r"\\").replace("\n", r"\n")


def _escape_label_value(text: str) -> str:
    return text.replace("\\", r"\\").replace("\n", r"\n").replace('"', r"\"")
