from tool_monitoring.metrics.base import (
    InvalidMetricNameError,
    InvalidMetricValueError,
    Metric,
    qualified_name,
)
from tool_monitoring.metrics.collection import (
    Collector,
    CollectorFactory,
    MetricCollection,
    assemble_collection,
    collect_metrics,
)
from tool_monitoring.metrics.config import (
    ConfigField,
    MetricConfig,
    MetricConfigError,
    deserialize_config,
    serialize_config,
)
from tool_monitoring.metrics.labels import StrictLabelNames, StrictLabels
from tool_monitoring.metrics.types import MetricType
from tool_monitoring.metrics.value import MetricValue

__all__ = [
    "Collector",
    "CollectorFactory",
    "ConfigField",
    "InvalidMetricNameError",
    "InvalidMetricValueError",
    "Metric",
    "MetricCollection",
    "MetricConfig",
    "MetricConfigError",
    "MetricType",
    "MetricValue",
    "StrictLabelNames",
    "StrictLabels",
    "assemble_collection",
    "collect_metrics",
    "deserialize_config",
    "qualified_name",
    "serialize_config",
]
