from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ConfigFieldOut(BaseModel):
    name: str
    label: str
    default: Any = None


class RegisteredMetricOut(BaseModel):
    id: Optional[int] = None
    qualified_name: str
    component: str
    name: str
    metric_type: str
    description: str
    enabled: bool
    config: Optional[dict[str, Any]] = None
    timecreated: Optional[int] = None
    timemodified: Optional[int] = None
    usermodified: Optional[int] = None
    config_fields: list[ConfigFieldOut] = []

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_metric(cls, metric) -> "RegisteredMetricOut":
        return cls(
            id=metric.id,
            qualified_name=metric.qualified_name,
            component=metric.component,
            name=metric.name,
            metric_type=metric.metric_type.value,
            description=metric.description,
            enabled=metric.enabled,
            config=metric.config,
            timecreated=metric.timecreated,
            timemodified=metric.timemodified,
            usermodified=metric.usermodified,
            config_fields=[
                ConfigFieldOut(name=f.name, label=f.label, default=f.default)
                for f in metric.definition.config_fields()
            ],
        )


class MetricListResponse(BaseModel):
    metrics: list[RegisteredMetricOut]
    duplicates: list[str] = []


class SyncResponse(BaseModel):
    """Outcome of a registry sync.

    ``orphans`` lists registry rows without a collected metric; they are only
    removed (and listed in ``deleted``) when the sync was asked to delete them.
    """

    registered: int
    created: list[str] = []
    duplicates: list[str] = []
    orphans: list[str] = []
    deleted: list[str] = []


class MetricEventOut(BaseModel):
    name: str
    metric: str
    objectid: Optional[int] = None
    userid: Optional[int] = None
    timecreated: Optional[int] = None
    description: str

    model_config = ConfigDict(from_attributes=True)


class MetricUpdateResponse(BaseModel):
    metric: RegisteredMetricOut
    events: list[MetricEventOut] = []
