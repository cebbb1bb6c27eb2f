import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from tool_monitoring.api.deps import get_manager
from tool_monitoring.core.config import get_settings
from tool_monitoring.services import prometheus
from tool_monitoring.services.metrics_manager import MetricsManager

router = APIRouter(prefix="/monitoring", tags=["prometheus"])


def _check_token(token: Optional[str]) -> None:
    expected = get_settings().export_token
    if expected and not (token and secrets.compare_digest(token, expected)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")


def _export(manager: MetricsManager, tags: Optional[list[str]]) -> Response:
    result = manager.fetch(enabled=True, tags=tags)
    body = prometheus.export(result.metrics.values())
    return Response(content=body, media_type=prometheus.CONTENT_TYPE)


@router.get("/prometheus")
def export_all(token: Optional[str] = None, manager: MetricsManager = Depends(get_manager)) -> Response:
    _check_token(token)
    return _export(manager, None)


@router.get("/{tag}/prometheus")
def export_tag(tag: str, token: Optional[str] = None, manager: MetricsManager = Depends(get_manager)) -> Response:
    _check_token(token)
    return _export(manager, [tag])
