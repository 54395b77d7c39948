"""
Burden Modeling Agent - FastAPI Application

This module provides the REST API for the burden / disengagement-risk engine.
It validates requests at the boundary, hands immutable inputs to the pure
engine functions, and serializes the results.

================================================================================
POLLING MODEL
================================================================================

The staff board re-posts every active patient to /burden-modeling/compute on
a fixed cadence (every 30 seconds in the reference deployment). Each call is
self-contained:

    ┌──────────────┐   every 30 s    ┌──────────────────────┐
    │ Staff board  │ ──────────────► │ POST /burden-modeling│
    │ (per patient)│ ◄────────────── │      /compute        │
    └──────────────┘  fresh result   └──────────┬───────────┘
                                                │ pure function
                                                ▼
                                     ┌──────────────────────┐
                                     │ compute_burden(...)  │
                                     │ no state, no I/O     │
                                     └──────────────────────┘

Nothing about a patient is kept between calls. The caller owns the patient
record and merges each result into it.

================================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .checkin import (
    assess_check_in,
    parse_timestamp,
    should_show_disengagement_warning,
    suggest_staff_action,
)
from .config import CTASLevel, ModelParameters, settings
from .facilities import SNAPSHOT_SOURCE, SNAPSHOT_TAKEN_AT, FacilityDirectory
from .model import (
    AlertStatus,
    CheckInResponse,
    ComputeBurdenRequest,
    InvalidInputError,
    compute_burden,
)
from .summary import PatientSnapshot, compute_admin_summary
from .vulnerability import VulnerabilityProfile, resolve_vulnerability_source
from .wait_estimator import EstimatedWaitRequest, estimate_wait_minutes


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS (Request/Response Schemas)
# =============================================================================

class ProfileInput(BaseModel):
    """Accessibility flags from intake."""

    chronic_pain: bool = False
    mobility: bool = False
    cognitive: bool = False
    sensory: bool = False
    language: bool = False
    alone: bool = False

    class Config:
        extra = "forbid"

    def to_profile(self) -> VulnerabilityProfile:
        return VulnerabilityProfile(**self.model_dump())


class CheckInInput(BaseModel):
    """One periodic check-in answer."""

    discomfort_level: Optional[int] = Field(
        default=None,
        ge=1,
        le=5,
        description="Self-reported discomfort (1=minimal, 5=severe)",
    )
    assistance_requested: List[str] = Field(
        default_factory=list,
        description="e.g. interpreter, mobility, quiet-space, info",
    )
    intends_to_stay: Optional[bool] = Field(
        default=None,
        description="False when the patient says they may leave",
    )
    timestamp: str = Field(
        ...,
        description="ISO-8601 time of the check-in",
    )

    def to_domain(self) -> CheckInResponse:
        return CheckInResponse(
            timestamp=self.timestamp,
            discomfort_level=self.discomfort_level,
            assistance_requested=tuple(self.assistance_requested),
            intends_to_stay=self.intends_to_stay,
        )


class ComputeBurdenBody(BaseModel):
    """Request schema for a burden computation."""

    facility_id: str = Field(
        ...,
        min_length=1,
        description="Facility the patient is waiting in",
    )
    vulnerability_multiplier: Optional[float] = Field(
        default=None,
        ge=0,
        description="Explicit multiplier; ignored when a profile is given",
    )
    profile: Optional[ProfileInput] = Field(
        default=None,
        description="Accessibility flags; takes precedence over the multiplier",
    )
    estimated_ctas_level: int = Field(
        ...,
        ge=1,
        le=5,
        description="CTAS level (1=most urgent)",
    )
    wait_time_minutes: float = Field(
        ...,
        ge=0,
        description="Minutes waited so far",
    )
    check_in_responses: List[CheckInInput] = Field(
        default_factory=list,
        description="Check-ins in the order they were given",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "facility_id": "grey_nuns",
                "profile": {"mobility": True, "alone": True},
                "estimated_ctas_level": 3,
                "wait_time_minutes": 95,
                "check_in_responses": [
                    {
                        "discomfort_level": 4,
                        "assistance_requested": ["quiet-space"],
                        "intends_to_stay": True,
                        "timestamp": "2026-02-20T21:10:00-07:00",
                    }
                ],
            }
        }

    def to_domain(self) -> ComputeBurdenRequest:
        return ComputeBurdenRequest(
            facility_id=self.facility_id,
            estimated_ctas_level=self.estimated_ctas_level,
            wait_time_minutes=self.wait_time_minutes,
            vulnerability=resolve_vulnerability_source(
                self.vulnerability_multiplier,
                self.profile.to_profile() if self.profile else None,
            ),
            check_in_responses=tuple(c.to_domain() for c in self.check_in_responses),
        )


class BurdenCurvePointOut(BaseModel):
    time_minutes: float
    distress_probability: float
    lwbs_probability: float
    return_visit_risk: float


class BaselineCurvePointOut(BaseModel):
    time_minutes: float
    distress_probability: float
    lwbs_probability: float


class ComputeBurdenResponse(BaseModel):
    """Response schema for a burden computation."""

    burden_curve: List[BurdenCurvePointOut]
    baseline_curve: List[BaselineCurvePointOut]
    burden: float = Field(ge=0, le=100)
    alert_status: AlertStatus
    equity_gap_score: float
    disengagement_window_minutes: Optional[int] = None
    confidence_interval: float
    suggest_amber_check_in: bool
    vulnerability_multiplier: float


class EstimatedWaitBody(BaseModel):
    """Request schema for the displayed wait estimate."""

    facility_id: str = Field(..., min_length=1)
    vulnerability_multiplier: float = Field(default=1.0, ge=0)
    estimated_ctas_level: int = Field(default=3, ge=1, le=5)
    wait_time_minutes: float = Field(default=0.0, ge=0)


class EstimatedWaitResponse(BaseModel):
    estimated_wait_minutes: int = Field(ge=15, le=600)


class CheckInAssessmentResponse(BaseModel):
    accepted: bool
    risk_elevated: bool
    suggested_actions: List[str]
    next_check_in_minutes: int


class StaffActionBody(BaseModel):
    """Current state of one patient on the staff board."""

    wait_time_minutes: float = Field(..., ge=0)
    burden: float = Field(..., ge=0, le=100)
    profile: ProfileInput = Field(default_factory=ProfileInput)
    check_in_responses: List[CheckInInput] = Field(default_factory=list)
    now: Optional[datetime] = Field(
        default=None,
        description="Reference time; server time when omitted",
    )


class StaffActionResponse(BaseModel):
    show_disengagement_warning: bool
    suggested_action: str


class PatientSnapshotInput(BaseModel):
    patient_id: str
    burden: float = Field(..., ge=0, le=100)
    alert_status: AlertStatus
    profile: ProfileInput = Field(default_factory=ProfileInput)
    check_in_responses: List[CheckInInput] = Field(default_factory=list)

    def to_domain(self) -> PatientSnapshot:
        return PatientSnapshot(
            patient_id=self.patient_id,
            burden=self.burden,
            alert_status=self.alert_status,
            profile=self.profile.to_profile(),
            check_ins=tuple(c.to_domain() for c in self.check_in_responses),
        )


class SummaryBody(BaseModel):
    patients: List[PatientSnapshotInput] = Field(default_factory=list)
    now: Optional[datetime] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    timestamp: datetime
    checks: Dict[str, Dict[str, Any]]


# =============================================================================
# APPLICATION STATE
# =============================================================================

class AppState:
    """
    Application state management.

    Holds only read-only collaborators (facility directory and calibration
    record) plus request counters. Patient data is never kept.
    """

    def __init__(self):
        self.params: ModelParameters = ModelParameters.from_settings(settings)
        self.facilities: FacilityDirectory = FacilityDirectory(
            default_leave_signal_weight=self.params.default_leave_signal_weight
        )
        self.burden_computations: int = 0
        self.wait_estimates: int = 0


# Global state
app_state = AppState()


def _now(value: Optional[datetime]) -> datetime:
    return parse_timestamp(value) if value is not None else datetime.now(timezone.utc)


# =============================================================================
# LIFESPAN MANAGEMENT
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(
        f"Facility directory loaded: {len(app_state.facilities.all())} facilities "
        f"({SNAPSHOT_SOURCE}, {SNAPSHOT_TAKEN_AT})"
    )

    yield

    logger.info("Shutting down burden modeling agent")


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Burden Modeling Agent",
    description="""
    Accessibility-adjusted disengagement-risk modeling for ED waiting rooms.

    ## Features
    - **Burden curves**: distress, LWBS and return-visit probability over time
    - **Burden score**: single 0-100 score with GREEN / AMBER / RED alerts
    - **Disengagement window**: minutes until LWBS risk becomes material
    - **Equity gap**: LWBS risk attributable to the patient's vulnerability
    - **Estimated wait**: display estimate adjusted for vulnerability

    ## Not a triage system
    CTAS is an input. This service never assigns or changes acuity.
    """,
    version=settings.service_version,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Operations"])
async def health_check() -> HealthResponse:
    """Health check endpoint for Kubernetes probes."""
    facility_count = len(app_state.facilities.all())

    checks = {
        "facilities": {
            "status": "ok" if facility_count else "degraded",
            "count": facility_count,
            "snapshot_taken_at": SNAPSHOT_TAKEN_AT,
        },
        "calibration": {
            "status": "ok",
            "vulnerability_flags": len(app_state.params.vulnerability_weights),
        },
        "usage": {
            "status": "ok",
            "burden_computations": app_state.burden_computations,
            "wait_estimates": app_state.wait_estimates,
        },
    }

    return HealthResponse(
        status="healthy" if facility_count else "degraded",
        service=settings.service_name,
        version=settings.service_version,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@app.post(
    "/burden-modeling/compute",
    response_model=ComputeBurdenResponse,
    response_model_exclude_none=True,
    tags=["Burden"],
)
async def compute_burden_endpoint(body: ComputeBurdenBody) -> Dict[str, Any]:
    """
    Compute the burden assessment for one waiting patient.

    **Vulnerability:** send either `vulnerability_multiplier` or `profile`.
    When both are sent the profile wins. When neither is sent the patient
    is treated as non-vulnerable.

    **Disengagement window** is only included when the patient has said they
    may leave or the burden is 50 or more.
    """
    request = body.to_domain()
    result = compute_burden(request, app_state.facilities, app_state.params)
    app_state.burden_computations += 1

    logger.info(
        f"Burden computed: facility={body.facility_id}",
        extra={
            "burden": round(result.burden, 2),
            "alert_status": result.alert_status.value,
            "ctas": body.estimated_ctas_level,
            "wait_time_minutes": body.wait_time_minutes,
        },
    )

    return result.to_dict()


@app.post(
    "/burden-modeling/estimated-wait",
    response_model=EstimatedWaitResponse,
    tags=["Burden"],
)
async def estimated_wait_endpoint(body: EstimatedWaitBody) -> EstimatedWaitResponse:
    """
    Estimate remaining wait for the patient's waiting screen.

    Unknown facilities fall back to a 180-minute published wait.
    """
    minutes = estimate_wait_minutes(
        EstimatedWaitRequest(
            facility_id=body.facility_id,
            vulnerability_multiplier=body.vulnerability_multiplier,
            estimated_ctas_level=body.estimated_ctas_level,
            wait_time_minutes=body.wait_time_minutes,
        ),
        app_state.facilities,
        app_state.params,
    )
    app_state.wait_estimates += 1
    return EstimatedWaitResponse(estimated_wait_minutes=minutes)


@app.get("/wait-times/facilities", tags=["Facilities"])
async def list_facilities() -> Dict[str, Any]:
    """List known facilities with their published waits and leave signals."""
    facilities = [
        _facility_payload(f.facility_id) for f in app_state.facilities.all()
    ]
    return {
        "source": SNAPSHOT_SOURCE,
        "snapshot_taken_at": SNAPSHOT_TAKEN_AT,
        "facilities": facilities,
        "count": len(facilities),
    }


@app.get("/wait-times/{facility_id}", tags=["Facilities"])
async def get_facility(facility_id: str) -> Dict[str, Any]:
    """Get one facility's published wait and leave-signal weight."""
    if facility_id not in app_state.facilities:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "facility_not_found",
                "message": f"No facility with id '{facility_id}'",
            },
        )
    return _facility_payload(facility_id)


def _facility_payload(facility_id: str) -> Dict[str, Any]:
    facility = app_state.facilities.get(facility_id)
    return {
        "facility_id": facility.facility_id,
        "name": facility.name,
        "city": facility.city,
        "wait_minutes": facility.wait_minutes,
        "lwbs_rate": facility.lwbs_rate,
        "leave_signal_weight": round(
            app_state.facilities.get_leave_signal_weight(facility_id), 4
        ),
    }


@app.get("/config/vulnerability-weights", tags=["Configuration"])
async def get_vulnerability_weights() -> Dict[str, Any]:
    """Calibration weights used to score accessibility profiles."""
    return {
        "formula": "additive",
        "weights": dict(app_state.params.vulnerability_weights),
        "floor": app_state.params.vulnerability_floor,
    }


@app.get("/config/ctas-levels", tags=["Configuration"])
async def get_ctas_levels() -> Dict[str, Any]:
    """CTAS levels with labels and urgency factors."""
    return {
        "levels": [
            {
                "level": level,
                "label": CTASLevel.get_label(level),
                "target_time_minutes": CTASLevel.TARGET_TIMES[level],
                "urgency_factor": CTASLevel.urgency_factor(level),
            }
            for level in sorted(CTASLevel.LABELS)
        ]
    }


@app.post("/check-in/assess", response_model=CheckInAssessmentResponse, tags=["Check-in"])
async def assess_check_in_endpoint(body: CheckInInput) -> CheckInAssessmentResponse:
    """Turn one check-in answer into staff actions."""
    assessment = assess_check_in(body.to_domain(), settings.check_in_interval_minutes)

    if assessment.risk_elevated:
        logger.warning(
            "Check-in flagged elevated risk",
            extra={"actions": assessment.suggested_actions},
        )

    return CheckInAssessmentResponse(
        accepted=assessment.accepted,
        risk_elevated=assessment.risk_elevated,
        suggested_actions=assessment.suggested_actions,
        next_check_in_minutes=assessment.next_check_in_minutes,
    )


@app.post("/check-in/staff-action", response_model=StaffActionResponse, tags=["Check-in"])
async def staff_action_endpoint(body: StaffActionBody) -> StaffActionResponse:
    """Disengagement warning and suggested action for the staff board."""
    now = _now(body.now)
    check_ins = [c.to_domain() for c in body.check_in_responses]
    interval = settings.check_in_interval_minutes

    return StaffActionResponse(
        show_disengagement_warning=should_show_disengagement_warning(
            body.wait_time_minutes, body.burden, check_ins, now, interval
        ),
        suggested_action=suggest_staff_action(
            body.wait_time_minutes,
            body.burden,
            check_ins,
            body.profile.to_profile(),
            now,
            interval,
        ),
    )


@app.post("/summary", tags=["Operations"])
async def summary_endpoint(body: SummaryBody) -> Dict[str, Any]:
    """Waiting-room summary over the patients supplied by the caller."""
    summary = compute_admin_summary(
        [p.to_domain() for p in body.patients],
        _now(body.now),
        settings.check_in_interval_minutes,
    )
    return summary.to_dict()


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request, exc: InvalidInputError):
    """Input that passed schema validation but not engine validation."""
    logger.warning(f"Invalid input rejected: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "invalid_input",
            "message": str(exc),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "detail": str(exc) if settings.debug else None,
        },
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "burden_modeling.api:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
