from tool_monitoring.models.metric import MetricRegistration

__all__ = [
    "MetricRegistration",
]
