from enum import Enum


class MetricType(str, Enum):
    """Metric types understood by the exporters.

    A counter is a gauge that must never decrease; that is up to the metric
    implementation and not checked at runtime.
    """

    GAUGE = "gauge"
    COUNTER = "counter"
