"""
Burden Modeling Agent - Disengagement Risk Engine

This module converts a waiting patient's situation into a burden assessment.
Everything here is a pure function of its arguments: no I/O, no clock reads,
no shared mutable state. The engine is re-run from scratch on every poll, so
identical inputs always give identical outputs.

================================================================================
PIPELINE
================================================================================

    ┌──────────────────────────────┐
    │ ComputeBurdenRequest         │  facility, CTAS, wait, profile, check-ins
    └──────────────┬───────────────┘
                   │
                   ▼
    ┌──────────────────────────────┐
    │ Vulnerability multiplier     │  additive profile weights, floored > 0
    └──────────────┬───────────────┘
                   │
                   ▼
    ┌──────────────────────────────┐
    │ Burden curve                 │  t = 0, 5, ... min(180, wait + 60)
    │   hazard(t, CTAS) × mult     │  distress / LWBS / return visit
    └──────────────┬───────────────┘
                   │
                   ▼
    ┌──────────────────────────────┐
    │ Burden score (0-100)         │  terminal point + wait impact
    │                              │  + leave intent + post-87 escalation
    └──────────────┬───────────────┘
                   │
        ┌──────────┼──────────────┬─────────────────┐
        ▼          ▼              ▼                 ▼
    Alert      Disengagement   Equity gap     Amber check-in
    G/A/R      window (min)    (LWBS excess)  suggestion

================================================================================
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .config import CTASLevel, ModelParameters
from .facilities import FacilityDirectory
from .vulnerability import (
    ExplicitMultiplier,
    ProfileSource,
    VulnerabilityProfile,
    VulnerabilitySource,
    apply_vulnerability_floor,
    score_vulnerability,
)

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# MODEL CONSTANTS
# =============================================================================

CURVE_STEP_MINUTES = 5
CURVE_MAX_MINUTES = 180
CURVE_LOOKAHEAD_MINUTES = 60

# Decay rates: LWBS accumulates more slowly than subjective distress
DISTRESS_RATE = 0.01
LWBS_RATE = 0.008
RETURN_VISIT_HORIZON_MINUTES = 120

DISTRESS_CAP = 0.95
LWBS_CAP = 0.95
RETURN_VISIT_CAP = 0.80

# Terminal-point weights
DISTRESS_WEIGHT = 30
LWBS_WEIGHT = 40
RETURN_VISIT_WEIGHT = 20

WAIT_IMPACT_SCALE = 60
WAIT_IMPACT_CAP = 60
LONG_WAIT_BUMP = 8
WAIT_IMPACT_TOTAL_CAP = 75
LEAVE_INTENT_POINTS = 15

BURDEN_MIN = 0.0
BURDEN_MAX = 100.0

RED_THRESHOLD = 75
AMBER_THRESHOLD = 50

DISENGAGEMENT_BURDEN_TRIGGER = 50
LWBS_MATERIAL_PROBABILITY = 0.5
WINDOW_MIN_MINUTES = 5
WINDOW_MAX_MINUTES = 60
WINDOW_DEFAULT_MINUTES = 20

AMBER_CHECK_IN_BURDEN = 55

# Reported alongside every result; not derived from the computation
CONFIDENCE_INTERVAL = 0.95


# =============================================================================
# ERRORS
# =============================================================================

class InvalidInputError(ValueError):
    """Request rejected at the boundary before the engine runs."""


# =============================================================================
# ENUMERATIONS AND DATA CLASSES
# =============================================================================

class AlertStatus(str, Enum):
    """
    Staff-facing alert level.

    - GREEN: routine monitoring
    - AMBER: elevated burden, consider a touchpoint
    - RED: high burden or the patient said they may leave
    """
    GREEN = "GREEN"
    AMBER = "AMBER"
    RED = "RED"


@dataclass(frozen=True)
class CheckInResponse:
    """One answer to the periodic "how are you doing" check-in."""
    timestamp: str = ""
    discomfort_level: Optional[int] = None  # 1-5
    assistance_requested: Tuple[str, ...] = ()
    intends_to_stay: Optional[bool] = None


@dataclass(frozen=True)
class ComputeBurdenRequest:
    """Everything the engine needs for one patient at one moment."""
    facility_id: str
    estimated_ctas_level: int
    wait_time_minutes: float
    vulnerability: VulnerabilitySource = field(
        default_factory=lambda: ExplicitMultiplier(1.0)
    )
    check_in_responses: Tuple[CheckInResponse, ...] = ()

    @property
    def planning_to_leave(self) -> bool:
        return has_intent_to_leave(self.check_in_responses)


@dataclass(frozen=True)
class BurdenCurvePoint:
    """Risk state at one grid time."""
    time_minutes: float
    distress_probability: float
    lwbs_probability: float
    return_visit_risk: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "time_minutes": self.time_minutes,
            "distress_probability": self.distress_probability,
            "lwbs_probability": self.lwbs_probability,
            "return_visit_risk": self.return_visit_risk,
        }


@dataclass(frozen=True)
class BaselineCurvePoint:
    """Same grid time with the vulnerability multiplier removed."""
    time_minutes: float
    distress_probability: float
    lwbs_probability: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "time_minutes": self.time_minutes,
            "distress_probability": self.distress_probability,
            "lwbs_probability": self.lwbs_probability,
        }


@dataclass
class ComputeBurdenResult:
    """
    Complete burden assessment for a patient.

    Created fresh per call. The caller merges it into whatever longer-lived
    patient record it owns.
    """
    burden_curve: List[BurdenCurvePoint]
    baseline_curve: List[BaselineCurvePoint]
    burden: float
    alert_status: AlertStatus
    equity_gap_score: float
    vulnerability_multiplier: float
    suggest_amber_check_in: bool = False
    disengagement_window_minutes: Optional[int] = None
    confidence_interval: float = CONFIDENCE_INTERVAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "burden_curve": [p.to_dict() for p in self.burden_curve],
            "baseline_curve": [p.to_dict() for p in self.baseline_curve],
            "burden": self.burden,
            "alert_status": self.alert_status.value,
            "equity_gap_score": self.equity_gap_score,
            "vulnerability_multiplier": self.vulnerability_multiplier,
            "suggest_amber_check_in": self.suggest_amber_check_in,
            "confidence_interval": self.confidence_interval,
        }
        if self.disengagement_window_minutes is not None:
            result["disengagement_window_minutes"] = self.disengagement_window_minutes
        return result


# =============================================================================
# HELPERS
# =============================================================================

def has_intent_to_leave(check_ins: Sequence[CheckInResponse]) -> bool:
    """True if any check-in said the patient does not intend to stay."""
    return any(c.intends_to_stay is False for c in check_ins)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


# =============================================================================
# VALIDATION
# =============================================================================

def validate_request(request: ComputeBurdenRequest) -> None:
    """
    Reject malformed requests.

    Raises:
        InvalidInputError: CTAS outside 1..5, negative or non-finite wait,
            negative or non-finite explicit multiplier, or a profile that is
            not a VulnerabilityProfile of booleans.
    """
    validate_ctas_and_wait(request.estimated_ctas_level, request.wait_time_minutes)

    source = request.vulnerability
    if isinstance(source, ExplicitMultiplier):
        value = source.value
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            raise InvalidInputError(
                f"vulnerability_multiplier must be a finite number >= 0, got {value!r}"
            )
    elif isinstance(source, ProfileSource):
        profile = source.profile
        if not isinstance(profile, VulnerabilityProfile):
            raise InvalidInputError("profile must be a VulnerabilityProfile")
        for name in VulnerabilityProfile.flag_names():
            if not isinstance(getattr(profile, name), bool):
                raise InvalidInputError(f"profile flag '{name}' must be a boolean")
    else:
        raise InvalidInputError(f"Unsupported vulnerability source: {source!r}")


def validate_ctas_and_wait(ctas_level: int, wait_time_minutes: float) -> None:
    if isinstance(ctas_level, bool) or not isinstance(ctas_level, int) \
            or not CTASLevel.is_valid(ctas_level):
        raise InvalidInputError(
            f"estimated_ctas_level must be an integer 1-5, got {ctas_level!r}"
        )
    if not isinstance(wait_time_minutes, (int, float)) \
            or not math.isfinite(wait_time_minutes) or wait_time_minutes < 0:
        raise InvalidInputError(
            f"wait_time_minutes must be a finite number >= 0, got {wait_time_minutes!r}"
        )


# =============================================================================
# HAZARD AND CURVES
# =============================================================================

def baseline_hazard(time_minutes, ctas_level: int):
    """
    Baseline hazard at ``time_minutes`` for a CTAS level.

    Accepts a scalar or a numpy array of times. Monotonically increasing
    in time; more urgent levels carry a larger urgency factor.
    """
    return 0.001 * np.exp(0.02 * np.asarray(time_minutes, dtype=float)) \
        * CTASLevel.urgency_factor(ctas_level)


def curve_horizon(wait_time_minutes: float) -> float:
    """Curve extends an hour past the current wait, capped at three hours."""
    return min(CURVE_MAX_MINUTES, wait_time_minutes + CURVE_LOOKAHEAD_MINUTES)


def curve_grid(max_time: float) -> np.ndarray:
    """Grid times 0, 5, 10, ... up to and including max_time when aligned."""
    n_points = int(math.floor(max_time / CURVE_STEP_MINUTES)) + 1
    return np.arange(n_points, dtype=float) * CURVE_STEP_MINUTES


def iter_burden_curve(
    ctas_level: int,
    wait_time_minutes: float,
    vulnerability_multiplier: float,
    leave_signal_weight: float = 1.0,
) -> Iterator[BurdenCurvePoint]:
    """
    Yield the burden curve in time order.

    The generator is single-use; call again for a fresh curve.
    """
    times = curve_grid(curve_horizon(wait_time_minutes))

    risk = baseline_hazard(times, ctas_level) * vulnerability_multiplier
    lwbs_risk = risk * leave_signal_weight

    distress = np.clip(1.0 - np.exp(-risk * times * DISTRESS_RATE), 0.0, DISTRESS_CAP)
    lwbs = np.clip(1.0 - np.exp(-lwbs_risk * times * LWBS_RATE), 0.0, LWBS_CAP)
    return_visit = np.clip(
        (1.0 - np.exp(-risk * 0.5)) * (times / RETURN_VISIT_HORIZON_MINUTES),
        0.0,
        RETURN_VISIT_CAP,
    )

    for t, d, l, r in zip(times, distress, lwbs, return_visit):
        yield BurdenCurvePoint(
            time_minutes=float(t),
            distress_probability=float(d),
            lwbs_probability=float(l),
            return_visit_risk=float(r),
        )


def build_baseline_curve(
    curve: Sequence[BurdenCurvePoint],
    vulnerability_multiplier: float,
) -> List[BaselineCurvePoint]:
    """Divide the multiplier back out of distress and LWBS, re-clamped."""
    return [
        BaselineCurvePoint(
            time_minutes=p.time_minutes,
            distress_probability=clamp(
                p.distress_probability / vulnerability_multiplier, 0.0, DISTRESS_CAP
            ),
            lwbs_probability=clamp(
                p.lwbs_probability / vulnerability_multiplier, 0.0, LWBS_CAP
            ),
        )
        for p in curve
    ]


# =============================================================================
# BURDEN SCORE
# =============================================================================

def wait_duration_impact(wait_time_minutes: float, params: ModelParameters) -> float:
    """
    Burden points from elapsed wait alone, independent of the curve.

    Scaled against the median total ED stay, with a fixed bump once the
    wait passes the median time to physician.
    """
    normalized = wait_time_minutes / params.median_total_stay_minutes
    impact = min(normalized * WAIT_IMPACT_SCALE, WAIT_IMPACT_CAP)
    if wait_time_minutes > params.median_to_physician_minutes:
        impact += LONG_WAIT_BUMP
    return min(impact, WAIT_IMPACT_TOTAL_CAP)


def post_reference_escalation(wait_time_minutes: float, params: ModelParameters) -> float:
    """
    Gradual escalation once the wait passes typical physician access.

    Piecewise linear: zero up to ``escalation_reference_minutes`` (87),
    then ``escalation_points_per_minute`` per extra minute, capped at
    ``escalation_cap_points``.
    """
    minutes_past = wait_time_minutes - params.escalation_reference_minutes
    if minutes_past <= 0:
        return 0.0
    return min(
        params.escalation_cap_points,
        minutes_past * params.escalation_points_per_minute,
    )


def aggregate_burden(
    last_point: BurdenCurvePoint,
    vulnerability_multiplier: float,
    wait_time_minutes: float,
    planning_to_leave: bool,
    leave_signal_weight: float,
    params: ModelParameters,
) -> float:
    """
    Collapse the terminal curve point and the wait context into 0-100.

    Order matters: every additive term is applied before the final
    (1 + multiplier) scaling, and the clamp comes last.
    """
    raw = (
        last_point.distress_probability * DISTRESS_WEIGHT
        + last_point.lwbs_probability * LWBS_WEIGHT
        + last_point.return_visit_risk * RETURN_VISIT_WEIGHT
    )
    burden = min(BURDEN_MAX, raw * vulnerability_multiplier)

    burden += wait_duration_impact(wait_time_minutes, params)

    if planning_to_leave:
        burden += LEAVE_INTENT_POINTS * leave_signal_weight

    burden += post_reference_escalation(wait_time_minutes, params)

    burden *= 1.0 + vulnerability_multiplier

    return clamp(burden, BURDEN_MIN, BURDEN_MAX)


# =============================================================================
# CLASSIFICATION AND DERIVED SIGNALS
# =============================================================================

def classify_alert(burden: float, planning_to_leave: bool) -> AlertStatus:
    """Strict thresholds: exactly 75 is AMBER, exactly 50 is GREEN."""
    if burden > RED_THRESHOLD or planning_to_leave:
        return AlertStatus.RED
    if burden > AMBER_THRESHOLD:
        return AlertStatus.AMBER
    return AlertStatus.GREEN


def needs_disengagement_window(burden: float, planning_to_leave: bool) -> bool:
    return planning_to_leave or burden >= DISENGAGEMENT_BURDEN_TRIGGER


def estimate_disengagement_window(
    curve: Sequence[BurdenCurvePoint],
    wait_time_minutes: float,
) -> int:
    """
    Minutes from now until LWBS probability becomes material.

    Scans for the first point with LWBS >= 0.5. A crossing already in the
    past reports the minimum window; no crossing within the horizon reports
    the default window.
    """
    for point in curve:
        if point.lwbs_probability >= LWBS_MATERIAL_PROBABILITY:
            minutes_from_now = point.time_minutes - wait_time_minutes
            if minutes_from_now <= 0:
                return WINDOW_MIN_MINUTES
            return round_half_up(
                clamp(minutes_from_now, WINDOW_MIN_MINUTES, WINDOW_MAX_MINUTES)
            )
    return WINDOW_DEFAULT_MINUTES


def compute_equity_gap(
    curve: Sequence[BurdenCurvePoint],
    vulnerability_multiplier: float,
) -> float:
    """Terminal LWBS probability in excess of the non-vulnerable baseline."""
    if not curve:
        return 0.0
    last = curve[-1]
    baseline_lwbs = last.lwbs_probability / vulnerability_multiplier
    return last.lwbs_probability - baseline_lwbs


def should_suggest_amber_check_in(
    wait_time_minutes: float,
    burden: float,
    params: Optional[ModelParameters] = None,
) -> bool:
    """Past typical physician access with at least moderate burden."""
    params = params or ModelParameters()
    return (
        wait_time_minutes > params.escalation_reference_minutes
        and burden >= AMBER_CHECK_IN_BURDEN
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def compute_burden(
    request: ComputeBurdenRequest,
    facilities: Optional[FacilityDirectory] = None,
    params: Optional[ModelParameters] = None,
) -> ComputeBurdenResult:
    """
    Run the full burden pipeline for one patient.

    Args:
        request: Validated or unvalidated request; validated here.
        facilities: Facility lookup for the leave-signal weight.
        params: Calibration record; defaults to the published values.

    Returns:
        ComputeBurdenResult built fresh for this call.

    Raises:
        InvalidInputError: if the request fails validation.
    """
    params = params or ModelParameters()
    if facilities is None:
        facilities = FacilityDirectory(
            default_leave_signal_weight=params.default_leave_signal_weight
        )

    validate_request(request)

    multiplier = apply_vulnerability_floor(
        score_vulnerability(request.vulnerability, params.vulnerability_weights),
        params.vulnerability_floor,
    )
    leave_signal_weight = facilities.get_leave_signal_weight(request.facility_id)
    wait = float(request.wait_time_minutes)
    planning_to_leave = request.planning_to_leave

    curve = list(iter_burden_curve(
        request.estimated_ctas_level, wait, multiplier, leave_signal_weight
    ))
    baseline_curve = build_baseline_curve(curve, multiplier)

    burden = aggregate_burden(
        curve[-1], multiplier, wait, planning_to_leave, leave_signal_weight, params
    )
    alert_status = classify_alert(burden, planning_to_leave)

    window = None
    if needs_disengagement_window(burden, planning_to_leave):
        window = estimate_disengagement_window(curve, wait)

    result = ComputeBurdenResult(
        burden_curve=curve,
        baseline_curve=baseline_curve,
        burden=burden,
        alert_status=alert_status,
        equity_gap_score=compute_equity_gap(curve, multiplier),
        vulnerability_multiplier=multiplier,
        suggest_amber_check_in=should_suggest_amber_check_in(wait, burden, params),
        disengagement_window_minutes=window,
    )

    logger.debug(
        f"Burden computed for facility {request.facility_id}: "
        f"{burden:.1f} ({alert_status.value}), multiplier {multiplier:.2f}, "
        f"{len(curve)} curve points"
    )

    return result
