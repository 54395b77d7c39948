"""
Burden Modeling Agent
=====================

Accessibility-adjusted disengagement-risk modeling for Emergency Department
waiting rooms.

For each waiting patient this agent produces distress, LWBS (left without
being seen) and return-visit probability curves, a 0-100 burden score with a
GREEN / AMBER / RED alert, an estimated disengagement window and an equity
gap against a non-vulnerable baseline.

Components:
-----------
- config: Environment configuration and published reference values
- vulnerability: Accessibility profile -> vulnerability multiplier
- model: Burden curves, score, alert, disengagement window, equity gap
- wait_estimator: Displayed wait estimate
- facilities: Facility wait-time and leave-signal lookup
- checkin: Check-in assessment and staff prompts
- summary: Waiting-room summary
- api: FastAPI REST endpoints

Usage:
------
    # As API server
    python -m uvicorn burden_modeling.api:app --host 0.0.0.0 --port 8006

    # As a library
    from burden_modeling.model import ComputeBurdenRequest, compute_burden
    result = compute_burden(ComputeBurdenRequest("grey_nuns", 3, 45.0))

Port: 8006
"""

__version__ = "1.0.0"
__author__ = "Hospital AI Team"

from .model import ComputeBurdenRequest, ComputeBurdenResult, compute_burden
from .wait_estimator import EstimatedWaitRequest, estimate_wait_minutes

__all__ = [
    "ComputeBurdenRequest",
    "ComputeBurdenResult",
    "compute_burden",
    "EstimatedWaitRequest",
    "estimate_wait_minutes",
    "__version__",
]
