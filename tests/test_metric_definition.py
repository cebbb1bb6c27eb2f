"""Tests for metric definitions, values, label validation and collections."""

import pytest

from conftest import StaticMetric, ThresholdConfig, ThresholdMetric
from tool_monitoring.metrics import (
    ConfigField,
    InvalidMetricNameError,
    InvalidMetricValueError,
    Metric,
    MetricCollection,
    MetricConfigError,
    MetricType,
    MetricValue,
    StrictLabelNames,
    StrictLabels,
    collect_metrics,
)
from tool_monitoring.metrics.base import snake_case
from tool_monitoring.services.registered_metric import RegisteredMetric


class OverdueTasks(StrictLabels, StaticMetric):
    allowed_labels = ({"task_type": "adhoc"}, {"task_type": "scheduled"})


class QueueLength(StrictLabelNames, StaticMetric):
    required_label_names = frozenset({"queue", "priority"})


class UserAccounts(Metric):
    metric_type = MetricType.COUNTER
    description = "Number of user accounts"

    def calculate(self, config):
        return MetricValue(0)


class TestMetricValue:
    def test_defaults_to_no_labels(self):
        assert MetricValue(5).label == {}

    def test_label_order_does_not_affect_equality(self):
        assert MetricValue(1, {"a": "x", "b": "y"}) == MetricValue(1, {"b": "y", "a": "x"})

    def test_label_is_copied(self):
        label = {"a": "x"}
        value = MetricValue(1, label)
        label["a"] = "changed"

        assert value.label == {"a": "x"}

    @pytest.mark.parametrize("raw", [True, "1", None])
    def test_rejects_non_numeric_values(self, raw):
        with pytest.raises(TypeError):
            MetricValue(raw)

    def test_rejects_non_string_labels(self):
        with pytest.raises(TypeError):
            MetricValue(1, {"a": 1})

    def test_is_unhashable(self):
        with pytest.raises(TypeError):
            hash(MetricValue(1))


class TestIdentity:
    def test_component_defaults_to_top_level_package(self):
        assert UserAccounts().get_component() == __name__.split(".", 1)[0]

    def test_name_defaults_to_snake_case_class_name(self):
        assert UserAccounts().get_name() == "user_accounts"

    def test_overrides(self):
        metric = UserAccounts(component="core", name="users")

        assert metric.qualified_name == "core_users"

    @pytest.mark.parametrize(
        "class_name,expected",
        [("UserAccounts", "user_accounts"), ("HTTPRequests", "http_requests"), ("Tasks2Run", "tasks2_run")],
    )
    def test_snake_case(self, class_name, expected):
        assert snake_case(class_name) == expected

    def test_names_must_fit_the_registry_columns(self):
        assert UserAccounts(name="x" * 100).get_name() == "x" * 100

        with pytest.raises(InvalidMetricNameError, match="name must be 1 to 100 characters"):
            UserAccounts(name="x" * 101).get_name()
        with pytest.raises(InvalidMetricNameError, match="component must be 1 to 100 characters"):
            UserAccounts(component="").qualified_name

    def test_abstract_calculate(self):
        with pytest.raises(TypeError):
            Metric()


class TestConfig:
    def test_metric_without_config_class(self):
        metric = StaticMetric("foo")

        assert metric.default_config() is None
        assert metric.parse_config({"anything": 1}) is None
        assert metric.config_fields() == []

    def test_default_and_parsed_config(self):
        metric = ThresholdMetric("limit")

        assert metric.default_config() == ThresholdConfig(threshold=10)
        assert metric.parse_config(None) == ThresholdConfig(threshold=10)
        assert metric.parse_config({"threshold": 2}) == ThresholdConfig(threshold=2)

    def test_config_fields_describe_the_form(self):
        assert ThresholdMetric("limit").config_fields() == [ConfigField("threshold", int, 10, "Threshold")]

    def test_json_round_trip(self):
        config = ThresholdConfig.from_json('{"threshold": 7}')

        assert config.to_json() == '{"threshold":7}'

    @pytest.mark.parametrize("raw", ["null", "[]", "{", '{"threshold": -5}'])
    def test_from_json_rejects_bad_input(self, raw):
        with pytest.raises(MetricConfigError):
            ThresholdConfig.from_json(raw)


class TestStrictLabels:
    def test_allowed_labels_pass(self):
        values = [MetricValue(3, {"task_type": "adhoc"}), MetricValue(1, {"task_type": "scheduled"})]
        metric = RegisteredMetric.from_metric(OverdueTasks("overdue_tasks", values))

        assert list(metric) == values

    def test_unknown_label_value_fails(self):
        metric = RegisteredMetric.from_metric(OverdueTasks("overdue_tasks", [MetricValue(1, {"task_type": "other"})]))

        with pytest.raises(InvalidMetricValueError, match='Label not allowed: {"task_type": "other"}'):
            list(metric)

    def test_missing_labels_fail(self):
        metric = RegisteredMetric.from_metric(OverdueTasks("overdue_tasks", MetricValue(1)))

        with pytest.raises(InvalidMetricValueError):
            list(metric)

    def test_values_before_the_invalid_one_are_produced(self):
        values = [MetricValue(3, {"task_type": "adhoc"}), MetricValue(1, {"task_type": "other"})]
        iterator = iter(RegisteredMetric.from_metric(OverdueTasks("overdue_tasks", values)))

        assert next(iterator) == values[0]
        with pytest.raises(InvalidMetricValueError):
            next(iterator)


class TestStrictLabelNames:
    def test_exact_label_names_pass(self):
        values = [MetricValue(4, {"queue": "mail", "priority": "high"})]

        assert list(RegisteredMetric.from_metric(QueueLength("queue_length", values))) == values

    @pytest.mark.parametrize("label", [{"queue": "mail"}, {"queue": "mail", "priority": "high", "host": "a"}, {}])
    def test_other_label_names_fail(self, label):
        metric = RegisteredMetric.from_metric(QueueLength("queue_length", [MetricValue(4, label)]))

        with pytest.raises(InvalidMetricValueError, match="Invalid label names"):
            list(metric)


class TestCollection:
    def test_collectors_run_once_in_order(self):
        calls = []

        def first(collection):
            calls.append("first")
            collection.add(StaticMetric("a"))

        def second(collection):
            calls.append("second")
            collection.add(StaticMetric("b"))
            collection.add(StaticMetric("a"))

        collection = collect_metrics([first, second])

        assert calls == ["first", "second"]
        assert [metric.qualified_name for metric in collection] == ["tool_x_a", "tool_x_b", "tool_x_a"]
        assert len(collection) == 3

    def test_iteration_is_restartable(self):
        collection = MetricCollection([StaticMetric("a"), StaticMetric("b")])

        assert list(collection) == list(collection)

    def test_adding_while_iterating_does_not_affect_the_running_iteration(self):
        collection = MetricCollection([StaticMetric("a")])

        seen = []
        for metric in collection:
            seen.append(metric)
            collection.add(StaticMetric("b"))

        assert len(seen) == 1
        assert len(collection) == 2
