"""Metrics shipped with the package, describing the metric registry itself."""

from __future__ import annotations

import time
from functools import partial
from typing import Callable, Iterator, Optional

from pydantic import Field, field_validator
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from tool_monitoring.metrics.base import Metric
from tool_monitoring.metrics.collection import Collector, CollectorFactory, MetricCollection
from tool_monitoring.metrics.config import MetricConfig
from tool_monitoring.metrics.labels import StrictLabelNames, StrictLabels
from tool_monitoring.metrics.types import MetricType
from tool_monitoring.metrics.value import MetricValue
from tool_monitoring.models.metric import MetricRegistration

registry = MetricRegistration.__table__


class RegisteredMetrics(StrictLabels, Metric):
    """Gauges the number of registry rows, split by enabled state."""

    metric_type = MetricType.GAUGE
    description = "Number of metrics in the registry by enabled state"
    allowed_labels = ({"enabled": "true"}, {"enabled": "false"})
    tags = frozenset({"registry"})

    def __init__(self, session: Session, **kwargs) -> None:
        super().__init__(**kwargs)
        self.session = session

    def calculate(self, config: Optional[MetricConfig]) -> Iterator[MetricValue]:
        query = select(registry.c.enabled, func.count()).group_by(registry.c.enabled)
        counts = {bool(enabled): count for enabled, count in self.session.execute(query)}
        yield MetricValue(counts.get(True, 0), {"enabled": "true"})
        yield MetricValue(counts.get(False, 0), {"enabled": "false"})


class TimeWindowsConfig(MetricConfig):
    time_windows: list[int] = Field(
        default_factory=lambda: [60, 300, 900, 3600],
        min_length=1,
        title="Time windows (seconds)",
    )

    @field_validator("time_windows")
    @classmethod
    def validate_time_windows(cls, v: list[int]) -> list[int]:
        """Sort numerically and drop duplicates."""
        if any(window <= 0 for window in v):
            raise ValueError("Time windows must be positive")
        return sorted(set(v))


class RecentlyModifiedMetrics(StrictLabelNames, Metric):
    """Gauges how many registry rows were modified within each configured time window."""

    metric_type = MetricType.GAUGE
    description = "Number of metrics whose registration was modified within the time window"
    config_class = TimeWindowsConfig
    required_label_names = frozenset({"time_window"})
    tags = frozenset({"registry"})

    def __init__(self, session: Session, clock: Optional[Callable[[], int]] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.session = session
        self.clock = clock

    def calculate(self, config: Optional[MetricConfig]) -> list[MetricValue]:
        if not isinstance(config, TimeWindowsConfig):
            config = self.default_config()
        now = self.clock() if self.clock is not None else int(time.time())
        columns = [
            func.coalesce(
                func.sum(case((registry.c.timemodified >= now - window, 1), else_=0)), 0
            ).label(f"window{window}")
            for window in config.time_windows
        ]
        row = self.session.execute(select(*columns)).one()
        return [
            MetricValue(int(count), {"time_window": f"{window}s"})
            for window, count in zip(config.time_windows, row)
        ]


def collect_builtin_metrics(collection: MetricCollection, *, session: Session) -> None:
    collection.add(RegisteredMetrics(session))
    collection.add(RecentlyModifiedMetrics(session))


def builtin_collectors(session: Session) -> list[Collector]:
    return [partial(collect_builtin_metrics, session=session)]


DEFAULT_COLLECTOR_FACTORIES: tuple[CollectorFactory, ...] = (builtin_collectors,)
