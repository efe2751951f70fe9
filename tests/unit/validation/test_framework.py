"""Tests for the validation result model."""

import json

import pytest

from dsf_lint.validation import ItemCollector, Severity, ValidationItem, ValidationResult


@pytest.fixture
def collector():
    """Collector for one BPMN file."""
    return ItemCollector(file="bpe/ping.bpmn", reference="ping.bpmn")


class TestSeverity:
    """Test severity ordering."""

    def test_rank_order(self):
        ranks = [s.rank for s in (Severity.SUCCESS, Severity.INFO, Severity.WARN, Severity.ERROR)]
        assert ranks == sorted(ranks)

    def test_values(self):
        assert [s.value for s in Severity] == ["error", "warn", "info", "success"]


class TestItemCollector:
    """Test item creation."""

    def test_items_carry_collector_location(self, collector):
        item = collector.error("service_task_class_empty", "ServiceTask has no implementation class.", "Task_1")
        assert item == ValidationItem(Severity.ERROR, "service_task_class_empty",
                                      "ServiceTask has no implementation class.",
                                      "bpe/ping.bpmn", "Task_1", None, "ping.bpmn")

    def test_for_process_shares_items(self, collector):
        process_items = collector.for_process("dsfdev_ping")
        process_items.warn("name_empty", "'Task_1' has no name", "Task_1")

        assert len(collector.items) == 1
        assert collector.items[0].process_id == "dsfdev_ping"

    def test_check_emits_exactly_one_item(self, collector):
        assert collector.check(True, Severity.WARN, "k", "failed", "passed") is True
        assert collector.check(False, Severity.WARN, "k", "failed", "passed") is False
        assert [(i.severity, i.message) for i in collector.items] == [
            (Severity.SUCCESS, "passed"), (Severity.WARN, "failed"),
        ]


class TestValidationResult:
    """Test ValidationResult aggregation."""

    def test_empty_result_passes(self):
        result = ValidationResult()
        assert result.passed
        assert result.status == Severity.SUCCESS
        assert result.exit_code() == 0

    def test_status_is_highest_severity(self, collector):
        collector.success("a", "ok")
        collector.warn("b", "careful")
        collector.info("c", "note")
        result = ValidationResult(list(collector.items))

        assert result.status == Severity.WARN
        assert result.passed
        assert result.exit_code() == 0
        assert result.exit_code(fail_on_warn=True) == 1

    def test_any_error_fails(self, collector):
        collector.error("a", "broken")
        collector.success("b", "ok")
        result = ValidationResult()
        result.extend(collector.items)

        assert not result.passed
        assert result.exit_code() == 1
        assert result.counters == {"error": 1, "warn": 0, "info": 0, "success": 1}
        assert [i.kind for i in result.by_severity(Severity.ERROR)] == ["a"]

    def test_to_dict_is_json_serializable(self, collector):
        collector.error("a", "broken", "Task_1")
        collector.success("b", "ok")
        result = ValidationResult(list(collector.items))

        data = result.to_dict(include_success=False)
        json.dumps(data)

        assert data["status"] == "error"
        assert data["passed"] is False
        assert len(data["items"]) == 1
        assert data["items"][0]["elementId"] == "Task_1"
        assert data["counters"]["success"] == 1

    def test_item_str(self, collector):
        item = collector.for_process("dsfdev_ping").warn("name_empty", "'Task_1' has no name", "Task_1")
        assert str(item) == "[WARN] name_empty: 'Task_1' has no name in bpe/ping.bpmn (process dsfdev_ping) at Task_1"
