"""Tests for status classification and duration formatting."""

from datetime import timedelta

import pytest

from schednotify.engine.classifier import Status, classify, format_duration


class TestJobClassification:
    def test_failed(self, make_event, clock):
        result = classify(make_event(failed=1), now=clock)
        assert result.status == Status.FAILED
        assert result.reason == "BackoffLimitExceeded"
        assert result.message == "Job has reached the specified backoff limit"

    def test_succeeded_wins_over_failed(self, make_event, clock):
        result = classify(make_event(succeeded=1, failed=2), now=clock)
        assert result.status == Status.SUCCEEDED

    def test_running(self, make_event, clock):
        result = classify(make_event(failed=0), now=clock)
        assert result.status == Status.RUNNING
        assert result.reason == ""
        # Started at 11:00, clock says 12:00
        assert result.duration == timedelta(hours=1)
        assert result.duration_text == "1h0m0s"

    def test_completion_time_ends_duration(self, make_event, clock):
        event = make_event(succeeded=1, failed=0, completion_time="2026-03-02T11:00:45Z")
        assert classify(event, now=clock).duration_text == "45s"

    def test_terminal_condition_ends_duration(self, make_event, clock):
        # Failed condition transitions at 11:02:05
        assert classify(make_event(failed=1), now=clock).duration_text == "2m5s"

    def test_first_failure_condition_wins(self, make_event, clock):
        event = make_event(
            failed=1,
            conditions=[
                {"type": "Failed", "status": "True", "reason": "First", "message": "one"},
                {"type": "Failed", "status": "True", "reason": "Second", "message": "two"},
            ],
        )
        result = classify(event, now=clock)
        assert (result.reason, result.message) == ("First", "one")

    def test_false_conditions_ignored(self, make_event, clock):
        event = make_event(failed=1, conditions=[{"type": "Failed", "status": "False", "reason": "Nope"}])
        assert classify(event, now=clock).reason == ""

    def test_missing_start_time_is_zero_not_error(self, make_event, clock):
        result = classify(make_event(start_time=None), now=clock)
        assert result.status == Status.FAILED
        assert result.duration == timedelta(0)
        assert result.duration_text == ""
        assert [g.field_name for g in result.gaps] == ["startTime"]

    def test_clock_skew_clamps_to_zero(self, make_event, clock):
        event = make_event(failed=0, start_time="2026-03-02T12:30:00Z")
        result = classify(event, now=clock)
        assert result.duration == timedelta(0)
        assert result.duration_text == "0s"


class TestWorkflowClassification:
    def test_phase_verbatim(self, make_workflow_event, clock):
        for phase in ("Running", "Succeeded", "Failed", "Error", "Pending"):
            assert classify(make_workflow_event(phase=phase), now=clock).status == phase

    def test_duration_and_message(self, make_workflow_event, clock):
        result = classify(make_workflow_event(), now=clock)
        assert result.duration_text == "1h1m1s"
        assert result.message == "child 'extract' failed"

    def test_still_running_uses_clock(self, make_workflow_event, clock):
        result = classify(make_workflow_event(phase="Running", finished_at=None), now=clock)
        assert result.duration_text == "2h0m0s"

    def test_reason_from_failure_condition(self, make_workflow_event, clock):
        event = make_workflow_event(
            conditions=[
                {"type": "PodRunning", "status": "True", "reason": "Irrelevant"},
                {"type": "Error", "status": "True", "reason": "OOMKilled"},
            ]
        )
        assert classify(event, now=clock).reason == "OOMKilled"

    def test_missing_phase_and_start(self, make_workflow_event, clock):
        result = classify(make_workflow_event(phase="", started_at=None), now=clock)
        assert result.status == ""
        assert result.duration == timedelta(0)
        assert {g.field_name for g in result.gaps} == {"phase", "startedAt"}


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0s"), (0.4, "0s"), (59, "59s"), (60, "1m0s"), (125, "2m5s"), (3723, "1h2m3s"), (90000, "25h0m0s")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(timedelta(seconds=seconds)) == expected

    def test_negative_is_zero(self):
        assert format_duration(timedelta(seconds=-5)) == "0s"
