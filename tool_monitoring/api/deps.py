from typing import Generator, Optional, Sequence

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from tool_monitoring.core.config import get_settings
from tool_monitoring.db.session import get_session
from tool_monitoring.metrics.collection import CollectorFactory, MetricCollection, assemble_collection
from tool_monitoring.services.metrics_manager import MetricsManager
from tool_monitoring.services.registered_metric import RegisteredMetric


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_actor_id(x_actor_id: Optional[int] = Header(default=None)) -> int:
    if x_actor_id is None:
        return get_settings().system_actor_id
    return x_actor_id


def get_collector_factories(request: Request) -> Sequence[CollectorFactory]:
    return request.app.state.collector_factories


def get_collection(
    db: Session = Depends(get_db),
    factories: Sequence[CollectorFactory] = Depends(get_collector_factories),
) -> MetricCollection:
    return assemble_collection(db, factories)


def get_manager(
    db: Session = Depends(get_db),
    collection: MetricCollection = Depends(get_collection),
    actor_id: int = Depends(get_actor_id),
) -> MetricsManager:
    return MetricsManager(db, collection, actor_id=actor_id)


def get_registered_metric(
    qualified_name: str,
    manager: MetricsManager = Depends(get_manager),
) -> RegisteredMetric:
    metric = manager.get_metric(qualified_name)
    if metric is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Metric not found")
    return metric
