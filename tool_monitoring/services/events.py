"""Notifications emitted when a registered metric is enabled, disabled or reconfigured."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional

import structlog

if TYPE_CHECKING:
    from tool_monitoring.services.registered_metric import RegisteredMetric

logger = structlog.get_logger()

METRIC_ENABLED = "metric_enabled"
METRIC_DISABLED = "metric_disabled"
METRIC_CONFIG_UPDATED = "metric_config_updated"

_DESCRIPTIONS = {
    METRIC_ENABLED: "User with ID '{userid}' enabled the metric '{metric}'.",
    METRIC_DISABLED: "User with ID '{userid}' disabled the metric '{metric}'.",
    METRIC_CONFIG_UPDATED: "User with ID '{userid}' updated the metric config for '{metric}'.",
}


@dataclass(frozen=True)
class MetricEvent:
    name: str
    metric: str  # qualified name
    objectid: Optional[int]
    userid: Optional[int]
    timecreated: Optional[int]

    def __post_init__(self) -> None:
        if self.name not in _DESCRIPTIONS:
            raise ValueError(f"Unknown metric event: {self.name}")
        if not self.metric:
            raise ValueError("Metric name is required")

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self.name].format(userid=self.userid, metric=self.metric)

    @classmethod
    def for_metric(cls, name: str, metric: "RegisteredMetric") -> "MetricEvent":
        return cls(
            name=name,
            metric=metric.qualified_name,
            objectid=metric.id,
            userid=metric.usermodified,
            timecreated=metric.timemodified,
        )


Listener = Callable[[MetricEvent], None]


class EventDispatcher:
    """Calls every subscribed listener, in subscription order, for each dispatched event."""

    def __init__(self, listeners: Iterable[Listener] = ()) -> None:
        self._listeners: list[Listener] = list(listeners)

    @classmethod
    def default(cls) -> "EventDispatcher":
        return cls([log_event])

    def subscribe(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def dispatch(self, event: MetricEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


def log_event(event: MetricEvent) -> None:
    logger.info(
        f"metric.{event.name.removeprefix('metric_')}",
        metric=event.metric,
        objectid=event.objectid,
        userid=event.userid,
        description=event.description,
    )
