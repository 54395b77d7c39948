"""
Estimated Wait Module.

Projects how much longer a patient should expect to wait, for display on the
patient's waiting screen. Independent of the burden curve and of LWBS risk;
it shares only the facility lookup with the engine.

Vulnerability SHORTENS the displayed estimate as an equity-prioritization
signal. The effect is bounded: the multiplier is clamped to [0.5, 2] before
it is inverted, so the estimate moves by at most a factor of two either way.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import ModelParameters
from .facilities import FacilityDirectory
from .model import clamp, round_half_up, validate_ctas_and_wait

logger = logging.getLogger(__name__)

MIN_ESTIMATE_MINUTES = 15
MAX_ESTIMATE_MINUTES = 600
MIN_FACTOR_MULTIPLIER = 0.5
MAX_FACTOR_MULTIPLIER = 2.0


@dataclass(frozen=True)
class EstimatedWaitRequest:
    """Input for a wait estimate."""
    facility_id: str
    vulnerability_multiplier: float = 1.0
    estimated_ctas_level: int = 3  # accepted for parity with compute_burden; unused
    wait_time_minutes: float = 0.0


def vulnerability_wait_factor(vulnerability_multiplier: float) -> float:
    """Inverse of the multiplier, clamped so the factor stays in [0.5, 2]."""
    return 1.0 / clamp(vulnerability_multiplier, MIN_FACTOR_MULTIPLIER, MAX_FACTOR_MULTIPLIER)


def estimate_wait_minutes(
    request: EstimatedWaitRequest,
    facilities: Optional[FacilityDirectory] = None,
    params: Optional[ModelParameters] = None,
) -> int:
    """
    Estimate remaining wait in whole minutes.

    Once the patient has waited past the median time to physician, the
    facility's published wait is treated as total time and the elapsed
    wait is subtracted; before that the published wait is shown as is.

    Returns:
        Integer minutes in [15, 600].

    Raises:
        InvalidInputError: CTAS outside 1..5 or negative wait.
    """
    params = params or ModelParameters()
    facilities = facilities or FacilityDirectory()

    validate_ctas_and_wait(request.estimated_ctas_level, request.wait_time_minutes)

    base_wait = facilities.get_wait_minutes(request.facility_id)
    if base_wait is None:
        base_wait = params.default_facility_wait_minutes

    if request.wait_time_minutes > params.median_to_physician_minutes:
        minutes = max(0.0, base_wait - request.wait_time_minutes)
    else:
        minutes = float(base_wait)

    minutes *= vulnerability_wait_factor(request.vulnerability_multiplier)

    estimate = round_half_up(clamp(minutes, MIN_ESTIMATE_MINUTES, MAX_ESTIMATE_MINUTES))

    logger.debug(
        f"Estimated wait for facility {request.facility_id}: {estimate} min "
        f"(base {base_wait}, waited {request.wait_time_minutes})"
    )
    return estimate
