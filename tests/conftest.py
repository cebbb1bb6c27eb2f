"""Pytest configuration and fixtures for registry tests."""

import pytest
from pydantic import Field
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tool_monitoring.db.base import Base
from tool_monitoring.metrics import Metric, MetricConfig, MetricType, MetricValue
from tool_monitoring.models import MetricRegistration
from tool_monitoring.services.events import EventDispatcher

NOW = 1_700_000_000


class StaticMetric(Metric):
    """Returns whatever values it was constructed with."""

    metric_type = MetricType.GAUGE
    description = "A metric with fixed values"
    component = "tool_x"

    def __init__(self, name=None, values=None, **kwargs):
        super().__init__(name=name, **kwargs)
        self.values = MetricValue(1) if values is None else values
        self.calls = 0

    def calculate(self, config):
        self.calls += 1
        return self.values


class ThresholdConfig(MetricConfig):
    threshold: int = Field(default=10, ge=0, title="Threshold")


class ThresholdMetric(StaticMetric):
    description = "Reports its configured threshold"
    config_class = ThresholdConfig

    def calculate(self, config):
        return MetricValue(config.threshold)


class StatementCounter:
    """Records every SQL statement sent to the database."""

    def __init__(self):
        self.statements = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement.strip().split(None, 1)[0].upper())

    @property
    def selects(self):
        return [s for s in self.statements if s == "SELECT"]

    @property
    def writes(self):
        return [s for s in self.statements if s in ("INSERT", "UPDATE", "DELETE")]

    def reset(self):
        self.statements.clear()


@pytest.fixture
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_sessionmaker(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture
def db_session(db_sessionmaker):
    """Create a database session for testing."""
    session = db_sessionmaker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def statements(db_engine):
    counter = StatementCounter()
    event.listen(db_engine, "before_cursor_execute", counter)
    yield counter
    event.remove(db_engine, "before_cursor_execute", counter)


@pytest.fixture
def events():
    """Dispatcher recording every event in ``events.received``."""
    dispatcher = EventDispatcher()
    dispatcher.received = []
    dispatcher.subscribe(dispatcher.received.append)
    return dispatcher


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def register(db_session):
    """Insert a registry row directly, bypassing the manager."""

    def _register(component, name, enabled=False, config=None, timemodified=NOW - 100, usermodified=1):
        row = MetricRegistration(
            component=component,
            name=name,
            enabled=enabled,
            config=config,
            timecreated=NOW - 1000,
            timemodified=timemodified,
            usermodified=usermodified,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _register
