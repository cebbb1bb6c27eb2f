from __future__ import annotations

from typing import Callable, Iterable, Iterator

from sqlalchemy.orm import Session

from tool_monitoring.metrics.base import Metric


class MetricCollection:
    """Ordered set of metric definitions gathered from the collectors.

    Duplicates are kept; deciding what to do about them is up to the consumer.
    """

    def __init__(self, metrics: Iterable[Metric] = ()) -> None:
        self._metrics: list[Metric] = []
        for metric in metrics:
            self.add(metric)

    def add(self, metric: Metric) -> None:
        self._metrics.append(metric)

    def __iter__(self) -> Iterator[Metric]:
        return iter(list(self._metrics))

    def __len__(self) -> int:
        return len(self._metrics)

    def __repr__(self) -> str:
        return f"<MetricCollection size={len(self._metrics)}>"


Collector = Callable[[MetricCollection], None]


def collect_metrics(collectors: Iterable[Collector]) -> MetricCollection:
    """Build a fresh collection by calling every collector exactly once."""
    collection = MetricCollection()
    for collector in collectors:
        collector(collection)
    return collection


# Builds the collectors of one component for the session of one operation.
CollectorFactory = Callable[[Session], Iterable[Collector]]


def assemble_collection(session: Session, factories: Iterable[CollectorFactory]) -> MetricCollection:
    """Bind every factory to ``session`` and collect from the resulting collectors in order."""
    return collect_metrics(collector for factory in factories for collector in factory(session))
