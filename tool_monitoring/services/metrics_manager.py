"""
Metrics Manager

Keeps the registry table consistent with the metric definitions gathered
from the collectors and joins both into RegisteredMetric instances.

- ``fetch`` reads registered metrics (one query, no writes)
- ``sync`` mirrors the collection into the registry in one transaction
- ``get_metric`` looks up a single registered metric by qualified name

A manager is built per logical operation (request, CLI command) from a
session and a freshly assembled collection; it is not meant to be cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import structlog
from sqlalchemy import delete, insert, select, tuple_
from sqlalchemy.orm import Session

from tool_monitoring.core.config import get_settings
from tool_monitoring.metrics.base import Metric, qualified_name
from tool_monitoring.metrics.collection import MetricCollection
from tool_monitoring.services.events import EventDispatcher
from tool_monitoring.services.registered_metric import (
    RegisteredMetric,
    RegistryContext,
    current_time,
    registry,
)
from tool_monitoring.services.tags import DefinitionTagResolver, TagResolver

logger = structlog.get_logger()


@dataclass
class FetchResult:
    metrics: dict[str, RegisteredMetric] = field(default_factory=dict)
    duplicates: list[str] = field(default_factory=list)


@dataclass
class SyncResult:
    metrics: dict[str, RegisteredMetric] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


class MetricsManager:
    def __init__(
        self,
        session: Session,
        collection: MetricCollection,
        *,
        actor_id: Optional[int] = None,
        events: Optional[EventDispatcher] = None,
        tag_resolver: Optional[TagResolver] = None,
        clock: Callable[[], int] = current_time,
        bulk_insert_threshold: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.session = session
        self.collection = collection
        self.context = RegistryContext(
            session=session,
            actor_id=settings.system_actor_id if actor_id is None else actor_id,
            events=events if events is not None else EventDispatcher.default(),
            clock=clock,
        )
        self.tag_resolver = tag_resolver or DefinitionTagResolver()
        self.bulk_insert_threshold = (
            settings.bulk_insert_threshold if bulk_insert_threshold is None else bulk_insert_threshold
        )
        # Result of the most recent fetch or sync, indexed by qualified name.
        self.metrics: dict[str, RegisteredMetric] = {}

    def fetch(
        self,
        *,
        enabled: Optional[bool] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> FetchResult:
        """Return registered metrics of the collection without writing anything.

        ``enabled`` restricts the result to enabled (True) or disabled (False)
        metrics. ``tags`` keeps only definitions the tag resolver matches.
        Registry rows without a definition in the collection are ignored.
        """
        tags = list(tags) if tags is not None else None
        definitions, duplicates = self._unique_definitions(self.collection)
        definitions = {
            name: definition
            for name, definition in definitions.items()
            if self.tag_resolver.matches(definition, tags)
        }
        result = FetchResult(metrics=self._load(definitions, enabled), duplicates=duplicates)
        self.metrics = result.metrics
        return result

    def get_metric(self, name: str, *, enabled: Optional[bool] = None) -> Optional[RegisteredMetric]:
        """Return the registered metric with qualified name ``name``, or None if there is none."""
        for definition in self.collection:
            if definition.qualified_name == name:
                return self._load({name: definition}, enabled).get(name)
        return None

    def sync(self, *, delete_orphans: bool = False) -> SyncResult:
        """Make the registry mirror the collection.

        Existing rows keep their enabled flag, config and audit data; missing
        ones are created disabled with the definition's default config. Rows
        whose metric is no longer collected are deleted when ``delete_orphans``
        is set. Everything happens in one transaction that is rolled back on
        any error.
        """
        session = self.session
        now = self.context.clock()
        actor_id = self.context.actor_id
        result = SyncResult()
        try:
            existing = {
                (row["component"], row["name"]): row
                for row in session.execute(select(registry).order_by(registry.c.id)).mappings()
            }
            existing_ids = {row["id"] for row in existing.values()}

            definitions, result.duplicates = self._unique_definitions(self.collection)
            unregistered: list[RegisteredMetric] = []
            for name, definition in definitions.items():
                row = existing.pop(_identity(definition), None)
                if row is not None:
                    metric = RegisteredMetric.from_row(definition, row, context=self.context)
                else:
                    metric = RegisteredMetric.from_metric(
                        definition,
                        context=self.context,
                        enabled=False,
                        timecreated=now,
                        timemodified=now,
                        usermodified=actor_id,
                    )
                    unregistered.append(metric)
                result.metrics[name] = metric

            # Whatever was not claimed above is no longer collected.
            result.orphans = [qualified_name(*key) for key in existing]
            if delete_orphans and existing:
                orphan_ids = [row["id"] for row in existing.values()]
                session.execute(delete(registry).where(registry.c.id.in_(orphan_ids)))
                result.deleted = list(result.orphans)

            self._create(unregistered, existing_ids)
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("metrics.sync_failed", collected=len(self.collection))
            raise

        result.created = [metric.qualified_name for metric in unregistered]
        self.metrics = result.metrics
        logger.info(
            "metrics.sync_completed",
            registered=len(result.metrics),
            created=len(result.created),
            duplicates=len(result.duplicates),
            orphans=len(result.orphans),
            deleted=len(result.deleted),
        )
        return result

    def _create(self, metrics: list[RegisteredMetric], existing_ids: set[int]) -> None:
        if not metrics:
            return
        if len(metrics) <= self.bulk_insert_threshold:
            for metric in metrics:
                inserted = self.session.execute(insert(registry).values(**metric.to_row()))
                metric.id = inserted.inserted_primary_key[0]
            return

        self.session.execute(insert(registry), [metric.to_row() for metric in metrics])
        # One query for the new ids instead of one round trip per insert.
        by_identity = {(metric.component, metric.name): metric for metric in metrics}
        new_rows = self.session.execute(
            select(registry.c.id, registry.c.component, registry.c.name).where(
                registry.c.id.not_in(sorted(existing_ids))
            )
        ).mappings()
        for row in new_rows:
            metric = by_identity.get((row["component"], row["name"]))
            if metric is not None:
                metric.id = row["id"]
        missing = [metric.qualified_name for metric in metrics if metric.id is None]
        if missing:
            raise RuntimeError(f"No id assigned to newly registered metrics: {', '.join(missing)}")

    def _load(
        self,
        definitions: dict[str, Metric],
        enabled: Optional[bool],
    ) -> dict[str, RegisteredMetric]:
        if not definitions:
            return {}
        identities = {_identity(definition): name for name, definition in definitions.items()}
        query = select(registry).where(
            tuple_(registry.c.component, registry.c.name).in_(list(identities))
        )
        if enabled is not None:
            query = query.where(registry.c.enabled == enabled)
        rows: dict[str, Any] = {
            identities[(row["component"], row["name"])]: row
            for row in self.session.execute(query).mappings()
        }
        return {
            name: RegisteredMetric.from_row(definition, rows[name], context=self.context)
            for name, definition in definitions.items()
            if name in rows
        }

    def _unique_definitions(self, definitions: Iterable[Metric]) -> tuple[dict[str, Metric], list[str]]:
        """Index definitions by qualified name, keeping the first of any duplicates."""
        unique: dict[str, Metric] = {}
        duplicates: list[str] = []
        for definition in definitions:
            name = definition.qualified_name
            if name not in unique:
                unique[name] = definition
                continue
            if name not in duplicates:
                duplicates.append(name)
                logger.warning(
                    "metrics.duplicate_qualified_name",
                    qualified_name=name,
                    message=f"Collected more than one metric with the qualified name '{name}'",
                )
        return unique, duplicates


def _identity(definition: Metric) -> tuple[str, str]:
    """Registry key of a definition; qualified names alone can collide across components."""
    return definition.get_component(), definition.get_name()
