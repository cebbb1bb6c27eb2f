from tool_monitoring.schemas.metric import (
    ConfigFieldOut,
    MetricEventOut,
    MetricListResponse,
    MetricUpdateResponse,
    RegisteredMetricOut,
    SyncResponse,
)

__all__ = [
    "ConfigFieldOut",
    "MetricEventOut",
    "MetricListResponse",
    "MetricUpdateResponse",
    "RegisteredMetricOut",
    "SyncResponse",
]
