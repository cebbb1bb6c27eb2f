from __future__ import annotations

from typing import Iterable, Optional, Protocol

from tool_monitoring.metrics.base import Metric


class TagResolver(Protocol):
    def matches(self, metric: Metric, tags: Optional[Iterable[str]]) -> bool: ...


class DefinitionTagResolver:
    """Matches metrics whose ``tags`` class attribute contains every requested tag."""

    def matches(self, metric: Metric, tags: Optional[Iterable[str]]) -> bool:
        if not tags:
            return True
        return set(tags) <= set(metric.tags)
