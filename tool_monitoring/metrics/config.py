"""Metric-specific configuration objects and their JSON representation.

A metric that can be configured declares a ``config_class`` deriving from
:class:`MetricConfig`. The registry stores the config as a JSON object in the
``config`` column; :func:`serialize_config` and :func:`deserialize_config`
convert between that column and plain dicts.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, ValidationError


class MetricConfigError(ValueError):
    """Raised for config data that is not a JSON object or does not fit the config class."""


class ConfigField(NamedTuple):
    """Describes one editable config field for form or API consumers."""

    name: str
    type: Any
    default: Any
    label: str


class MetricConfig(BaseModel):
    """Base class for metric configs.

    Subclasses declare their fields with ``pydantic.Field``; the field ``title``
    doubles as the human readable label returned by :meth:`describe_fields`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def describe_fields(cls) -> list[ConfigField]:
        fields = []
        for name, info in cls.model_fields.items():
            default = None if info.is_required() else info.get_default(call_default_factory=True)
            fields.append(ConfigField(name, info.annotation, default, info.title or name))
        return fields

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "MetricConfig":
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise MetricConfigError(f"Invalid config for {cls.__name__}: {exc}") from exc

    @classmethod
    def from_json(cls, raw: str) -> "MetricConfig":
        data = deserialize_config(raw)
        if data is None:
            raise MetricConfigError(f"Missing config for {cls.__name__}")
        return cls.from_data(data)

    def to_json(self) -> str:
        return serialize_config(self)


def serialize_config(config: MetricConfig | Mapping[str, Any] | None) -> Optional[str]:
    """Return the compact JSON object stored in the registry, or ``None``."""
    if config is None:
        return None
    if isinstance(config, BaseModel):
        data = config.model_dump(mode="json")
    else:
        data = dict(config)
    try:
        return json.dumps(data, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise MetricConfigError(f"Config cannot be serialized: {exc}") from exc


def deserialize_config(raw: str | None) -> Optional[dict[str, Any]]:
    """Decode a stored config; anything but a JSON object (or ``None``) is rejected."""
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MetricConfigError("The provided config is not valid JSON") from exc
    if not isinstance(data, dict):
        raise MetricConfigError("The provided config is not a JSON object")
    return data
