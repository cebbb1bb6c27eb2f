from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from tool_monitoring.api.deps import get_manager, get_registered_metric
from tool_monitoring.metrics.config import MetricConfigError
from tool_monitoring.schemas import (
    MetricEventOut,
    MetricListResponse,
    MetricUpdateResponse,
    RegisteredMetricOut,
    SyncResponse,
)
from tool_monitoring.services.metrics_manager import MetricsManager
from tool_monitoring.services.registered_metric import RegisteredMetric

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=MetricListResponse)
def list_metrics(
    enabled: Optional[bool] = None,
    tag: list[str] = Query(default=[]),
    manager: MetricsManager = Depends(get_manager),
):
    result = manager.fetch(enabled=enabled, tags=tag)
    return MetricListResponse(
        metrics=[RegisteredMetricOut.from_metric(metric) for metric in result.metrics.values()],
        duplicates=result.duplicates,
    )


@router.post("/sync", response_model=SyncResponse)
def sync_metrics(
    delete: bool = False,
    manager: MetricsManager = Depends(get_manager),
):
    result = manager.sync(delete_orphans=delete)
    return SyncResponse(
        registered=len(result.metrics),
        created=result.created,
        duplicates=result.duplicates,
        orphans=result.orphans,
        deleted=result.deleted,
    )


@router.get("/{qualified_name}", response_model=RegisteredMetricOut)
def get_metric(metric: RegisteredMetric = Depends(get_registered_metric)):
    return RegisteredMetricOut.from_metric(metric)


@router.put("/{qualified_name}/enable", response_model=MetricUpdateResponse)
def enable_metric(metric: RegisteredMetric = Depends(get_registered_metric)):
    events = metric.update(enabled=True)
    return _update_response(metric, events)


@router.put("/{qualified_name}/disable", response_model=MetricUpdateResponse)
def disable_metric(metric: RegisteredMetric = Depends(get_registered_metric)):
    events = metric.update(enabled=False)
    return _update_response(metric, events)


@router.put("/{qualified_name}/config", response_model=MetricUpdateResponse)
def update_metric_config(
    payload: dict[str, Any] = Body(...),
    metric: RegisteredMetric = Depends(get_registered_metric),
):
    try:
        events = metric.update(config=payload)
    except MetricConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _update_response(metric, events)


def _update_response(metric: RegisteredMetric, events) -> MetricUpdateResponse:
    return MetricUpdateResponse(
        metric=RegisteredMetricOut.from_metric(metric),
        events=[
            MetricEventOut(
                name=event.name,
                metric=event.metric,
                objectid=event.objectid,
                userid=event.userid,
                timecreated=event.timecreated,
                description=event.description,
            )
            for event in events
        ],
    )
