"""Base class for all metric definitions.

A metric definition owns the behaviour of a metric: its identity, type,
description and the :meth:`Metric.calculate` method producing the current
value(s). Whether a metric is enabled and how it is configured is stored in the
registry and joined with the definition by
:class:`tool_monitoring.services.registered_metric.RegisteredMetric`.

Concrete subclasses must set ``metric_type`` and ``description`` and implement
``calculate``. They may set ``component`` and ``name`` to override the derived
identity, ``config_class`` to make the metric configurable, ``tags`` for tag
based filtering, and override ``validate_value`` (see
:mod:`tool_monitoring.metrics.labels`).
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Iterable, Mapping, Optional, Union

from tool_monitoring.metrics.config import ConfigField, MetricConfig
from tool_monitoring.metrics.types import MetricType
from tool_monitoring.metrics.value import MetricValue

MAX_NAME_LENGTH = 100

_camel_boundary = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

CalculateResult = Union[MetricValue, Iterable[MetricValue]]


class InvalidMetricValueError(ValueError):
    """Raised when a produced metric value does not have the label shape a metric declares."""


class InvalidMetricNameError(ValueError):
    """Raised when a component or metric name does not fit the registry columns."""


def snake_case(name: str) -> str:
    return _camel_boundary.sub("_", name).lower()


class Metric(ABC):
    metric_type: ClassVar[MetricType]
    description: ClassVar[str]

    component: ClassVar[Optional[str]] = None
    name: ClassVar[Optional[str]] = None
    config_class: ClassVar[Optional[type[MetricConfig]]] = None
    tags: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, *, component: Optional[str] = None, name: Optional[str] = None) -> None:
        self._component = component
        self._name = name

    def get_component(self) -> str:
        """Component (owner namespace) defining the metric, at most 100 characters."""
        if self._component is not None:
            component = self._component
        elif type(self).component is not None:
            component = type(self).component
        else:
            component = type(self).__module__.split(".", 1)[0]
        return _check_length("component", component)

    def get_name(self) -> str:
        """Identifier unique within the component, at most 100 characters."""
        if self._name is not None:
            name = self._name
        elif type(self).name is not None:
            name = type(self).name
        else:
            name = snake_case(type(self).__name__)
        return _check_length("name", name)

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.get_component(), self.get_name())

    @abstractmethod
    def calculate(self, config: Optional[MetricConfig]) -> CalculateResult:
        """Produce the current value or values.

        Metrics with a single unlabeled value may return one MetricValue;
        labeled metrics return (or yield) one MetricValue per label set.
        ``config`` is an instance of ``config_class``, or ``None`` for metrics
        without one.
        """

    def default_config(self) -> Optional[MetricConfig]:
        """Config stored the first time the metric is registered."""
        if self.config_class is None:
            return None
        return self.config_class()

    def parse_config(self, data: Optional[Mapping[str, Any]]) -> Optional[MetricConfig]:
        if self.config_class is None:
            return None
        if data is None:
            return self.default_config()
        return self.config_class.from_data(data)

    def config_fields(self) -> list[ConfigField]:
        if self.config_class is None:
            return []
        return self.config_class.describe_fields()

    def validate_value(self, value: MetricValue) -> MetricValue:
        """Return ``value`` if it is acceptable, raise InvalidMetricValueError otherwise."""
        return value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.qualified_name}>"


def qualified_name(component: str, name: str) -> str:
    return f"{component}_{name}"


def _check_length(kind: str, value: str) -> str:
    if not value or len(value) > MAX_NAME_LENGTH:
        raise InvalidMetricNameError(
            f"Metric {kind} must be 1 to {MAX_NAME_LENGTH} characters long, got {len(value)}: {value[:20]!r}"
        )
    return value
