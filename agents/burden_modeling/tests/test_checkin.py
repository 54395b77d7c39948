"""
Burden Modeling Agent - Check-in Tests

Run with: pytest tests/test_checkin.py -v
"""

from datetime import datetime, timezone

import pytest

from burden_modeling.checkin import (
    MONITOR_ACTION,
    OPTIONAL_CHECK_ACTION,
    OUTREACH_ACTION,
    assess_check_in,
    has_missed_check_in,
    parse_timestamp,
    should_show_disengagement_warning,
    suggest_staff_action,
)
from burden_modeling.model import CheckInResponse
from burden_modeling.vulnerability import VulnerabilityProfile

NOW = datetime(2026, 2, 20, 22, 0, tzinfo=timezone.utc)
RECENT = "2026-02-20T21:50:00Z"
STALE = "2026-02-20T21:00:00Z"


class TestParseTimestamp:
    """Tests for ISO-8601 parsing."""

    def test_zulu_suffix(self):
        assert parse_timestamp("2026-02-20T21:50:00Z") == datetime(
            2026, 2, 20, 21, 50, tzinfo=timezone.utc
        )

    def test_naive_means_utc(self):
        assert parse_timestamp("2026-02-20T21:50:00").tzinfo == timezone.utc

    def test_offset_preserved(self):
        parsed = parse_timestamp("2026-02-20T14:50:00-07:00")
        assert parsed == datetime(2026, 2, 20, 21, 50, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday"])
    def test_missing_or_unparseable(self, value):
        assert parse_timestamp(value) is None


class TestAssessCheckIn:
    """Tests for single check-in assessment."""

    def test_calm_check_in(self):
        assessment = assess_check_in(CheckInResponse(RECENT, discomfort_level=2))

        assert assessment.accepted is True
        assert assessment.risk_elevated is False
        assert assessment.suggested_actions == []
        assert assessment.next_check_in_minutes == 20

    def test_high_discomfort(self):
        assessment = assess_check_in(CheckInResponse(RECENT, discomfort_level=4))

        assert assessment.risk_elevated is True
        assert assessment.suggested_actions == ["check-in-recommended"]

    def test_assistance_and_intent_to_leave(self):
        check_in = CheckInResponse(
            RECENT,
            discomfort_level=5,
            assistance_requested=("interpreter", "quiet-space"),
            intends_to_stay=False,
        )
        assessment = assess_check_in(check_in)

        assert assessment.risk_elevated is True
        assert assessment.suggested_actions == [
            "check-in-recommended",
            "interpreter-page-suggested",
            "quiet-space-availability-check",
            "staff-alert-intent-to-leave",
        ]

    def test_custom_interval(self):
        assert assess_check_in(CheckInResponse(RECENT), 30).next_check_in_minutes == 30


class TestMissedCheckIn:
    """Tests for the missed check-in predicate."""

    def test_recent_is_not_missed(self):
        assert has_missed_check_in(RECENT, NOW) is False

    def test_stale_is_missed(self):
        assert has_missed_check_in(STALE, NOW) is True

    def test_exactly_interval_is_not_missed(self):
        assert has_missed_check_in("2026-02-20T21:40:00Z", NOW) is False

    def test_no_timestamp_is_not_missed(self):
        assert has_missed_check_in("", NOW) is False


class TestDisengagementWarning:
    """Tests for the staff-board warning."""

    def test_quiet_patient(self):
        assert should_show_disengagement_warning(30, 20, [CheckInResponse(RECENT)], NOW) is False

    def test_long_wait(self):
        assert should_show_disengagement_warning(87, 10, [], NOW) is True

    def test_high_burden(self):
        assert should_show_disengagement_warning(30, 70, [], NOW) is True

    def test_intent_to_leave(self):
        check_ins = [CheckInResponse(RECENT, intends_to_stay=False)]
        assert should_show_disengagement_warning(10, 5, check_ins, NOW) is True


class TestSuggestStaffAction:
    """Tests for the one-line staff suggestion."""

    def test_credible_risk_gets_outreach(self):
        action = suggest_staff_action(
            100, 60, [CheckInResponse(STALE)], VulnerabilityProfile(), NOW
        )
        assert action == OUTREACH_ACTION

    def test_stale_check_in_below_burden_is_not_outreach(self):
        action = suggest_staff_action(
            100, 50, [CheckInResponse(STALE)], VulnerabilityProfile(), NOW
        )
        assert action == MONITOR_ACTION

    def test_early_wait_gets_optional_check(self):
        action = suggest_staff_action(
            30, 40, [CheckInResponse(RECENT)], VulnerabilityProfile(mobility=True), NOW
        )
        assert action == OPTIONAL_CHECK_ACTION

    def test_flags_drive_actions_after_reference_wait(self):
        profile = VulnerabilityProfile(mobility=True, language=True, cognitive=True)
        action = suggest_staff_action(95, 40, [CheckInResponse(RECENT)], profile, NOW)

        assert action == "Interpreter available, Mobility assistance, Clear communication check"

    def test_intent_to_leave_early_uses_flags(self):
        check_ins = [CheckInResponse(RECENT, intends_to_stay=False)]
        action = suggest_staff_action(
            20, 40, check_ins, VulnerabilityProfile(sensory=True), NOW
        )
        assert action == "Quiet space offered"
