"""
Registered Metric

Joins a metric definition (behaviour) with its row in the registry table
(enabled flag, config, audit fields). Instances are built by
``MetricsManager.fetch``/``MetricsManager.sync`` and are only valid for the
session they were built with.

Iterating over an instance produces the metric's current, validated values.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from tool_monitoring.metrics.base import Metric, qualified_name
from tool_monitoring.metrics.config import (
    MetricConfig,
    MetricConfigError,
    deserialize_config,
    serialize_config,
)
from tool_monitoring.metrics.types import MetricType
from tool_monitoring.metrics.value import MetricValue
from tool_monitoring.models.metric import MetricRegistration
from tool_monitoring.services.events import (
    METRIC_CONFIG_UPDATED,
    METRIC_DISABLED,
    METRIC_ENABLED,
    EventDispatcher,
    MetricEvent,
)

logger = structlog.get_logger()

registry = MetricRegistration.__table__

# Column names of the registry table; ``component`` and ``name`` are required.
FIELDS = (
    "component",
    "name",
    "enabled",
    "config",
    "timecreated",
    "timemodified",
    "usermodified",
    "id",
)
REQUIRED_FIELDS = ("component", "name")
AUDIT_FIELDS = ("timemodified", "usermodified")


class MalformedRegistrationError(ValueError):
    """Raised when registry data lacks an identity field or holds a config that is not a JSON object."""


def current_time() -> int:
    return int(time.time())


@dataclass
class RegistryContext:
    """Session, actor and event sink shared by the metrics of one registry operation."""

    session: Session
    actor_id: int
    events: EventDispatcher = field(default_factory=EventDispatcher.default)
    clock: Callable[[], int] = current_time


class RegisteredMetric:
    def __init__(
        self,
        definition: Metric,
        *,
        component: str,
        name: str,
        enabled: bool = False,
        config: Optional[MetricConfig | Mapping[str, Any] | str] = None,
        timecreated: Optional[int] = None,
        timemodified: Optional[int] = None,
        usermodified: Optional[int] = None,
        id: Optional[int] = None,
        context: Optional[RegistryContext] = None,
    ) -> None:
        self.definition = definition
        self.component = component
        self.name = name
        self.enabled = bool(enabled)
        self.config = _decode_config(config)
        self.timecreated = timecreated
        self.timemodified = timemodified
        self.usermodified = usermodified
        self.id = id
        self.context = context

    @classmethod
    def from_metric(
        cls,
        definition: Metric,
        *,
        context: Optional[RegistryContext] = None,
        **properties: Any,
    ) -> "RegisteredMetric":
        """Build an unsaved instance for ``definition``.

        ``component`` and ``name`` default to the definition's identity and
        ``config`` to its default config. Keys in ``properties`` that are not
        registry columns are ignored.
        """
        arguments: dict[str, Any] = {
            "component": definition.get_component(),
            "name": definition.get_name(),
        }
        if "config" not in properties:
            arguments["config"] = serialize_config(definition.default_config())
        for field_name in FIELDS:
            if field_name in properties:
                arguments[field_name] = properties[field_name]
        return cls(definition, context=context, **arguments)

    @classmethod
    def from_row(
        cls,
        definition: Metric,
        row: Mapping[str, Any],
        *,
        context: Optional[RegistryContext] = None,
    ) -> "RegisteredMetric":
        """Rebuild an instance from a registry row or any mapping with the same keys."""
        row = dict(row)
        for field_name in REQUIRED_FIELDS:
            if row.get(field_name) is None:
                raise MalformedRegistrationError(f"Cannot instantiate metric without `{field_name}`")
        arguments = {key: row[key] for key in FIELDS if key in row}
        return cls(definition, context=context, **arguments)

    def to_row(self, fields: Optional[tuple[str, ...] | list[str]] = None) -> dict[str, Any]:
        """Return column values for DB statements; ``id`` is always included once known."""
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        for field_name in FIELDS:
            if field_name == "id" or (fields is not None and field_name not in fields):
                continue
            value = getattr(self, field_name)
            if field_name == "config":
                value = serialize_config(value)
            data[field_name] = value
        return data

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.component, self.name)

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def metric_type(self) -> MetricType:
        return self.definition.metric_type

    @property
    def parsed_config(self) -> Optional[MetricConfig]:
        return self.definition.parse_config(self.config)

    def __iter__(self) -> Iterator[MetricValue]:
        values = self.definition.calculate(self.parsed_config)
        if isinstance(values, MetricValue):
            values = (values,)
        for value in values:
            yield self.definition.validate_value(value)

    def enable(self) -> None:
        """Enable the metric for calculation and export; no-op if already enabled."""
        if self.enabled:
            return
        self._save({"enabled": True}, [METRIC_ENABLED])

    def disable(self) -> None:
        """Disable the metric; no-op if already disabled."""
        if not self.enabled:
            return
        self._save({"enabled": False}, [METRIC_DISABLED])

    def update_config(self, config: MetricConfig | Mapping[str, Any]) -> None:
        """Validate and store a new config; always writes and notifies."""
        self._save({"config": self._normalize_config(config)}, [METRIC_CONFIG_UPDATED])

    def update(
        self,
        *,
        enabled: Optional[bool] = None,
        config: MetricConfig | Mapping[str, Any] | None = None,
    ) -> list[MetricEvent]:
        """Apply the enabled flag and/or config in one transaction.

        Only what actually differs from the current state is written, with one
        event per changed aspect. Returns the dispatched events.
        """
        changes: dict[str, Any] = {}
        event_names: list[str] = []
        if enabled is not None and bool(enabled) != self.enabled:
            changes["enabled"] = bool(enabled)
            event_names.append(METRIC_ENABLED if enabled else METRIC_DISABLED)
        if config is not None:
            normalized = self._normalize_config(config)
            if normalized != self.config:
                changes["config"] = normalized
                event_names.append(METRIC_CONFIG_UPDATED)
        if not changes:
            return []
        return self._save(changes, event_names)

    def _normalize_config(self, config: MetricConfig | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(config, MetricConfig):
            data: Mapping[str, Any] = config.model_dump(mode="json")
        else:
            data = config
        if self.definition.config_class is not None:
            data = self.definition.config_class.from_data(data).model_dump(mode="json")
        return deserialize_config(serialize_config(data)) or {}

    def _save(self, changes: dict[str, Any], event_names: list[str]) -> list[MetricEvent]:
        context = self.context
        if context is None:
            raise RuntimeError(f"Metric '{self.qualified_name}' is not bound to a registry session")
        if self.id is None:
            raise RuntimeError(f"Cannot update metric '{self.qualified_name}' without `id`")

        previous = {key: getattr(self, key) for key in (*changes, *AUDIT_FIELDS)}
        for key, value in changes.items():
            setattr(self, key, value)
        self.timemodified = context.clock()
        self.usermodified = context.actor_id

        values = self.to_row((*changes, *AUDIT_FIELDS))
        values.pop("id", None)
        try:
            context.session.execute(update(registry).where(registry.c.id == self.id).values(**values))
            context.session.commit()
        except Exception:
            context.session.rollback()
            for key, value in previous.items():
                setattr(self, key, value)
            logger.warning("metric.update_failed", metric=self.qualified_name, fields=sorted(changes))
            raise

        events = [MetricEvent.for_metric(event_name, self) for event_name in event_names]
        for event in events:
            context.events.dispatch(event)
        return events

    def __repr__(self) -> str:
        return f"<RegisteredMetric {self.qualified_name} id={self.id} enabled={self.enabled}>"


def _decode_config(config: Optional[MetricConfig | Mapping[str, Any] | str]) -> Optional[dict[str, Any]]:
    if config is None:
        return None
    if isinstance(config, MetricConfig):
        return config.model_dump(mode="json")
    if isinstance(config, str):
        try:
            return deserialize_config(config)
        except MetricConfigError as exc:
            raise MalformedRegistrationError(str(exc)) from exc
    if not isinstance(config, Mapping):
        raise MalformedRegistrationError("The provided config is not a JSON object")
    return dict(config)
