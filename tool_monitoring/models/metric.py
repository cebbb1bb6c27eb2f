from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tool_monitoring.db.base import Base


class MetricRegistration(Base):
    """Persisted enabled flag, config and audit data of one metric, keyed by component and name."""

    __tablename__ = "tool_monitoring_metrics"
    __table_args__ = (
        UniqueConstraint("component", "name", name="uq_tool_monitoring_metrics_component_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    component: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    config: Mapped[Optional[str]] = mapped_column(Text)  # JSON object or NULL
    timecreated: Mapped[int] = mapped_column(Integer, nullable=False)
    timemodified: Mapped[int] = mapped_column(Integer, nullable=False)
    usermodified: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<MetricRegistration {self.component}_{self.name} id={self.id} enabled={self.enabled}>"
