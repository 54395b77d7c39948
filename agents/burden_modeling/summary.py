"""
Admin summary over the current waiting room.

The caller supplies the patients; nothing is stored here.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from .checkin import NEXT_CHECK_IN_MINUTES, has_missed_check_in
from .model import AlertStatus, CheckInResponse, round_half_up
from .vulnerability import VulnerabilityProfile


@dataclass(frozen=True)
class PatientSnapshot:
    """Latest burden result for one waiting patient."""
    patient_id: str
    burden: float
    alert_status: AlertStatus
    profile: VulnerabilityProfile = field(default_factory=VulnerabilityProfile)
    check_ins: Tuple[CheckInResponse, ...] = ()


@dataclass
class AlertDistribution:
    green: int = 0
    amber: int = 0
    red: int = 0
    total: int = 0


@dataclass
class FlagEquity:
    avg_burden: float = 0.0
    red_percent: float = 0.0


@dataclass
class AdminSummary:
    alert_distribution: AlertDistribution
    average_burden: float
    missed_check_in_rate: float
    equity_by_flag: Dict[str, FlagEquity]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = self.alert_distribution
        return {
            "alert_distribution": {
                "green": d.green, "amber": d.amber, "red": d.red, "total": d.total,
            },
            "average_burden": self.average_burden,
            "missed_check_in_rate": self.missed_check_in_rate,
            "equity_by_flag": {
                flag: {"avg_burden": e.avg_burden, "red_percent": e.red_percent}
                for flag, e in self.equity_by_flag.items()
            },
        }


def _round(value: float, places: int) -> float:
    """Half-up rounding to a fixed number of decimal places."""
    scale = 10 ** places
    return round_half_up(value * scale) / scale


def _flag_equity(patients: List[PatientSnapshot], flag: str) -> FlagEquity:
    with_flag = [p for p in patients if getattr(p.profile, flag)]
    if not with_flag:
        return FlagEquity()
    avg_burden = sum(p.burden for p in with_flag) / len(with_flag)
    red = sum(1 for p in with_flag if p.alert_status == AlertStatus.RED)
    return FlagEquity(
        avg_burden=_round(avg_burden, 1),
        red_percent=_round(red / len(with_flag) * 100, 1),
    )


def compute_admin_summary(
    patients: Sequence[PatientSnapshot],
    now: datetime,
    interval_minutes: int = NEXT_CHECK_IN_MINUTES,
) -> AdminSummary:
    """
    Alert distribution, average burden, missed check-in rate and per-flag equity.

    A patient who has never checked in counts as missed.
    """
    patients = list(patients)
    total = len(patients)

    distribution = AlertDistribution(
        green=sum(1 for p in patients if p.alert_status == AlertStatus.GREEN),
        amber=sum(1 for p in patients if p.alert_status == AlertStatus.AMBER),
        red=sum(1 for p in patients if p.alert_status == AlertStatus.RED),
        total=total,
    )

    average_burden = sum(p.burden for p in patients) / total if total else 0.0

    missed = sum(
        1 for p in patients
        if not p.check_ins
        or has_missed_check_in(p.check_ins[-1].timestamp, now, interval_minutes)
    )
    missed_rate = missed / total if total else 0.0

    return AdminSummary(
        alert_distribution=distribution,
        average_burden=_round(average_burden, 1),
        missed_check_in_rate=_round(missed_rate, 2),
        equity_by_flag={
            flag: _flag_equity(patients, flag)
            for flag in VulnerabilityProfile.flag_names()
        },
    )
