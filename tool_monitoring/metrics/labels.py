"""Label shape validation mixins for metrics.

Mix one of these into a :class:`~tool_monitoring.metrics.base.Metric` subclass
before the base class::

    class OverdueTasks(StrictLabels, Metric):
        allowed_labels = ({"task_type": "adhoc"}, {"task_type": "scheduled"})
"""

from __future__ import annotations

import json
from typing import ClassVar, Mapping, Sequence

from tool_monitoring.metrics.base import InvalidMetricValueError
from tool_monitoring.metrics.value import MetricValue


class StrictLabels:
    """Only accept values whose label map equals one of ``allowed_labels``."""

    allowed_labels: ClassVar[Sequence[Mapping[str, str]]] = ()

    def labels(self) -> Sequence[Mapping[str, str]]:
        return self.allowed_labels

    def validate_value(self, value: MetricValue) -> MetricValue:
        if not any(dict(allowed) == value.label for allowed in self.labels()):
            raise InvalidMetricValueError(f"Label not allowed: {json.dumps(value.label)}")
        return value


class StrictLabelNames:
    """Only accept values labeled with exactly the names in ``required_label_names``."""

    required_label_names: ClassVar[frozenset[str]] = frozenset()

    def label_names(self) -> frozenset[str]:
        return frozenset(self.required_label_names)

    def validate_value(self, value: MetricValue) -> MetricValue:
        if set(value.label) != self.label_names():
            raise InvalidMetricValueError(f"Invalid label names: {json.dumps(value.label)}")
        return value
