"""
Burden Modeling Agent - Admin Summary Tests

Run with: pytest tests/test_summary.py -v
"""

from datetime import datetime, timezone

import pytest

from burden_modeling.model import AlertStatus, CheckInResponse
from burden_modeling.summary import PatientSnapshot, compute_admin_summary
from burden_modeling.vulnerability import VulnerabilityProfile

NOW = datetime(2026, 2, 20, 22, 0, tzinfo=timezone.utc)


@pytest.fixture
def waiting_room():
    return [
        PatientSnapshot(
            "p1", 20.0, AlertStatus.GREEN,
            VulnerabilityProfile(mobility=True),
            (CheckInResponse("2026-02-20T21:50:00Z"),),
        ),
        PatientSnapshot(
            "p2", 60.0, AlertStatus.AMBER,
            VulnerabilityProfile(mobility=True, language=True),
            (CheckInResponse("2026-02-20T21:00:00Z"),),
        ),
        PatientSnapshot(
            "p3", 90.0, AlertStatus.RED,
            VulnerabilityProfile(language=True),
        ),
    ]


class TestAdminSummary:
    """Tests for the waiting-room summary."""

    def test_alert_distribution(self, waiting_room):
        summary = compute_admin_summary(waiting_room, NOW)
        d = summary.alert_distribution

        assert (d.green, d.amber, d.red, d.total) == (1, 1, 1, 3)

    def test_average_burden_and_missed_rate(self, waiting_room):
        summary = compute_admin_summary(waiting_room, NOW)

        assert summary.average_burden == 56.7
        # p2 is stale, p3 never checked in
        assert summary.missed_check_in_rate == 0.67

    def test_equity_by_flag(self, waiting_room):
        equity = compute_admin_summary(waiting_room, NOW).equity_by_flag

        assert set(equity) == set(VulnerabilityProfile.flag_names())
        assert equity["mobility"].avg_burden == 40.0
        assert equity["mobility"].red_percent == 0.0
        assert equity["language"].avg_burden == 75.0
        assert equity["language"].red_percent == 50.0
        assert equity["chronic_pain"].avg_burden == 0.0

    def test_empty_waiting_room(self):
        summary = compute_admin_summary([], NOW)

        assert summary.alert_distribution.total == 0
        assert summary.average_burden == 0.0
        assert summary.missed_check_in_rate == 0.0

    def test_to_dict(self, waiting_room):
        data = compute_admin_summary(waiting_room, NOW).to_dict()

        assert data["alert_distribution"] == {"green": 1, "amber": 1, "red": 1, "total": 3}
        assert data["equity_by_flag"]["language"] == {"avg_burden": 75.0, "red_percent": 50.0}

    def test_rates_round_half_up(self):
        """One missed patient out of eight is 0.125, reported as 0.13."""
        recent = (CheckInResponse("2026-02-20T21:50:00Z"),)
        patients = [
            PatientSnapshot(f"p{i}", 10.0, AlertStatus.GREEN, check_ins=recent)
            for i in range(7)
        ]
        patients.append(PatientSnapshot("p7", 10.0, AlertStatus.GREEN))

        assert compute_admin_summary(patients, NOW).missed_check_in_rate == 0.13

    def test_burden_averages_round_half_up(self):
        patients = [
            PatientSnapshot("a", 0.25, AlertStatus.GREEN, VulnerabilityProfile(alone=True)),
        ]
        summary = compute_admin_summary(patients, NOW)

        assert summary.average_burden == 0.3
        assert summary.equity_by_flag["alone"].avg_burden == 0.3
