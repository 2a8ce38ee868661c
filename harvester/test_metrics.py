import pytest
from metrics import HarvestMetrics


def test_metrics_records_archived_target():
    tracker = HarvestMetrics()
    tracker.start_target("1", "https://example.com/")
    tracker.end_target("1", success=True, states=["detected", "awaiting_puzzle", "solved"])

    summary = tracker.get_summary()
    assert summary["total_targets"] == 1
    assert summary["archived"] == 1
    assert summary["challenges_seen"] == 1
    assert summary["per_target"][0]["states"] == ["detected", "awaiting_puzzle", "solved"]


def test_metrics_multiple_targets():
    tracker = HarvestMetrics()
    tracker.start_target("1", "https://a.com/")
    tracker.end_target("1", success=True)
    tracker.start_target("2", "https://b.com/")
    tracker.end_target("2", success=False, error="timeout")
    tracker.start_target("3", "https://c.com/")
    tracker.end_target("3", success=False, skipped=True)

    summary = tracker.get_summary()
    assert summary["total_targets"] == 3
    assert summary["archived"] == 1
    assert summary["skipped"] == 1
    assert summary["failed"] == 1
    assert summary["challenges_seen"] == 0
    assert summary["per_target"][1]["error"] == "timeout"
