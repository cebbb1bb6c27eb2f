"""Tests for the command line interface."""

import pytest

from conftest import StaticMetric
from tool_monitoring import cli
from tool_monitoring.metrics import MetricValue
from tool_monitoring.metrics.builtin import builtin_collectors

REGISTERED = "tool_monitoring_registered_metrics"
RECENT = "tool_monitoring_recently_modified_metrics"


@pytest.fixture(autouse=True)
def cli_database(db_sessionmaker, monkeypatch):
    monkeypatch.setattr(cli, "get_sessionmaker", lambda: db_sessionmaker)


def run(capsys, *argv):
    code = cli.main(["--actor-id", "7", *argv])
    return code, capsys.readouterr()


def test_sync(capsys, register):
    register("tool_x", "gone")

    code, output = run(capsys, "sync")
    assert code == 0
    assert "Registered: 2, created: 2" in output.out
    assert "Orphan: tool_x_gone" in output.out

    code, output = run(capsys, "sync", "--delete")
    assert "Registered: 2, created: 0" in output.out
    assert "Deleted: tool_x_gone" in output.out


def test_list(capsys):
    run(capsys, "sync")
    run(capsys, "enable", REGISTERED)

    code, output = run(capsys, "list", "--disabled")

    assert code == 0
    assert f'{RECENT}\tgauge\tdisabled\t{{"time_windows": [60, 300, 900, 3600]}}' in output.out
    assert REGISTERED not in output.out


def test_enable_prints_event(capsys):
    run(capsys, "sync")

    code, output = run(capsys, "enable", REGISTERED)
    assert code == 0
    assert f"User with ID '7' enabled the metric '{REGISTERED}'." in output.out

    code, output = run(capsys, "enable", REGISTERED)
    assert f"Metric '{REGISTERED}' unchanged" in output.out


def test_disable(capsys):
    run(capsys, "sync")
    run(capsys, "enable", REGISTERED)

    code, output = run(capsys, "disable", REGISTERED)

    assert code == 0
    assert f"User with ID '7' disabled the metric '{REGISTERED}'." in output.out


def test_configure(capsys):
    run(capsys, "sync")

    code, output = run(capsys, "configure", RECENT, '{"time_windows": [30]}')
    assert code == 0
    assert f"updated the metric config for '{RECENT}'" in output.out

    code, output = run(capsys, "configure", RECENT, '{"time_windows": "soon"}')
    assert code == 1
    assert "Invalid config" in output.err

    code, output = run(capsys, "configure", RECENT, "{not json")
    assert code == 1


def test_unknown_metric(capsys):
    run(capsys, "sync")

    code, output = run(capsys, "enable", "tool_x_unknown")

    assert code == 1
    assert "Unknown metric: tool_x_unknown" in output.err


def test_export(capsys):
    run(capsys, "sync")
    run(capsys, "enable", REGISTERED)

    code, output = run(capsys, "export", "--tag", "registry")

    assert code == 0
    assert f'{REGISTERED}{{enabled="true"}} 1' in output.out
    assert RECENT not in output.out


def test_extra_collector_factories(capsys):
    def extra_collectors(session):
        return [lambda collection: collection.add(StaticMetric("jobs", MetricValue(3)))]

    code = cli.main(["sync"], collector_factories=[builtin_collectors, extra_collectors])
    assert code == 0
    assert "Registered: 3, created: 3" in capsys.readouterr().out

    cli.main(["enable", "tool_x_jobs"], collector_factories=[extra_collectors])
    capsys.readouterr()
    cli.main(["export"], collector_factories=[extra_collectors])

    assert capsys.readouterr().out.strip().endswith("tool_x_jobs 3")
