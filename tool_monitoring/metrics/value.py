from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Mapping


@dataclass(frozen=True)
class MetricValue:
    """A single sample of a metric together with its labels.

    Label order is kept as given so exporters emit labels in a stable order.
    Equality does not depend on label order.
    """

    value: int | float
    label: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, Real):
            raise TypeError(f"Metric value must be an int or float, got {type(self.value).__name__}")
        label = dict(self.label)
        for label_name, label_value in label.items():
            if not isinstance(label_name, str) or not isinstance(label_value, str):
                raise TypeError(f"Label names and values must be strings: {label_name!r}={label_value!r}")
        object.__setattr__(self, "label", label)

    __hash__ = None  # type: ignore[assignment]
