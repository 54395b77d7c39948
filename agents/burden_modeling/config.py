"""
Burden Modeling Agent - Configuration Module

This module centralizes all environment-based configuration for the burden
modeling microservice. It follows the 12-factor app methodology by
externalizing configuration through environment variables.

================================================================================
REFERENCE VALUES
================================================================================

The engine never fits parameters. Every number below is a calibration value
taken from a published source and is treated as versioned configuration:

    CIHI NACRS Emergency Department Visits and Lengths of Stay
    (Alberta medians, 2024-2025 final data)
    ─────────────────────────────────────────────────────────
    Median total ED stay ............................ 238 min
    Median time to physician ........................  90 min

    Published ED LWBS study (triage-matched controls)
    ─────────────────────────────────────────────────────────
    Median time to physician ........................  87 min
    Used as the trigger for "beyond typical physician access".

Vulnerability weights come from population-health survey data and are
summed per flag (see vulnerability.py).

================================================================================
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Mapping

from pydantic import Field
from pydantic_settings import BaseSettings


# CIHI NACRS: median total ED stay (minutes)
MEDIAN_TOTAL_STAY_MINUTES = 238

# CIHI NACRS: median time to physician (minutes)
MEDIAN_TO_PHYSICIAN_MINUTES = 90

# Median time-to-physician among triage-matched controls (LWBS study)
MATCHED_CONTROL_MEDIAN_TO_PHYSICIAN_MINUTES = 87

DEFAULT_VULNERABILITY_WEIGHTS: Dict[str, float] = {
    "chronic_pain": 0.25,
    "mobility": 0.20,
    "sensory": 0.15,
    "cognitive": 0.15,
    "alone": 0.10,
    "language": 0.10,
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from environment variables,
    with support for .env files and type validation.
    """

    # ==========================================================================
    # SERVICE IDENTIFICATION
    # ==========================================================================
    service_name: str = Field(
        default="burden-modeling-agent",
        description="Unique identifier for this microservice"
    )
    service_version: str = Field(
        default="1.0.0",
        description="Semantic version of this agent"
    )
    environment: str = Field(
        default="development",
        description="Runtime environment (development, staging, production)"
    )

    # ==========================================================================
    # VULNERABILITY CALIBRATION
    # ==========================================================================
    vulnerability_weights: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_VULNERABILITY_WEIGHTS),
        description="Additive weight per accessibility flag"
    )
    vulnerability_floor: float = Field(
        default=0.01,
        gt=0.0,
        le=1.0,
        description="Smallest multiplier the engine will use (guards divisions)"
    )

    # ==========================================================================
    # REFERENCE MEDIANS
    # ==========================================================================
    median_total_stay_minutes: float = Field(
        default=MEDIAN_TOTAL_STAY_MINUTES,
        gt=0,
        description="Median total ED stay used to normalize wait impact"
    )
    median_to_physician_minutes: float = Field(
        default=MEDIAN_TO_PHYSICIAN_MINUTES,
        gt=0,
        description="Median time to physician; waits beyond it add a fixed bump"
    )
    escalation_reference_minutes: float = Field(
        default=MATCHED_CONTROL_MEDIAN_TO_PHYSICIAN_MINUTES,
        gt=0,
        description="Wait after which gradual burden escalation starts"
    )

    # ==========================================================================
    # ESCALATION TUNING
    # ==========================================================================
    # Shape of the post-reference escalation. Not published anywhere; these
    # are operating defaults and are expected to be tuned per site.
    escalation_points_per_minute: float = Field(
        default=0.1,
        ge=0.0,
        description="Burden points added per minute waited past the reference"
    )
    escalation_cap_points: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum burden points the escalation can add"
    )

    # ==========================================================================
    # FACILITY DEFAULTS
    # ==========================================================================
    default_facility_wait_minutes: float = Field(
        default=180.0,
        gt=0,
        description="Published wait assumed when a facility is unknown"
    )
    default_leave_signal_weight: float = Field(
        default=1.0,
        gt=0,
        description="LWBS scaling used when a facility has no leave signal"
    )

    # ==========================================================================
    # CHECK-IN CADENCE
    # ==========================================================================
    check_in_interval_minutes: int = Field(
        default=20,
        ge=1,
        le=120,
        description="Minutes between patient check-ins"
    )

    # ==========================================================================
    # API CONFIGURATION
    # ==========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8006,
        description="API server port"
    )
    api_workers: int = Field(
        default=1,
        description="Number of Uvicorn workers"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # ==========================================================================
    # LOGGING CONFIGURATION
    # ==========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached Settings instance.

    Using lru_cache ensures we only parse environment variables once,
    improving performance and consistency across the application.
    """
    return Settings()


# ==========================================================================
# CONVENIENCE EXPORTS
# ==========================================================================
settings = get_settings()


@dataclass(frozen=True)
class ModelParameters:
    """
    Calibration record passed explicitly to every engine function.

    The engine reads nothing global; two callers holding different
    parameter records can run side by side.
    """
    vulnerability_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_VULNERABILITY_WEIGHTS)
    )
    vulnerability_floor: float = 0.01
    median_total_stay_minutes: float = MEDIAN_TOTAL_STAY_MINUTES
    median_to_physician_minutes: float = MEDIAN_TO_PHYSICIAN_MINUTES
    escalation_reference_minutes: float = MATCHED_CONTROL_MEDIAN_TO_PHYSICIAN_MINUTES
    escalation_points_per_minute: float = 0.1
    escalation_cap_points: float = 10.0
    default_facility_wait_minutes: float = 180.0
    default_leave_signal_weight: float = 1.0

    @classmethod
    def from_settings(cls, source: Settings) -> "ModelParameters":
        """Build the parameter record from loaded settings."""
        return cls(
            vulnerability_weights=dict(source.vulnerability_weights),
            vulnerability_floor=source.vulnerability_floor,
            median_total_stay_minutes=source.median_total_stay_minutes,
            median_to_physician_minutes=source.median_to_physician_minutes,
            escalation_reference_minutes=source.escalation_reference_minutes,
            escalation_points_per_minute=source.escalation_points_per_minute,
            escalation_cap_points=source.escalation_cap_points,
            default_facility_wait_minutes=source.default_facility_wait_minutes,
            default_leave_signal_weight=source.default_leave_signal_weight,
        )


# ==========================================================================
# CTAS LEVEL CONSTANTS
# ==========================================================================
class CTASLevel:
    """
    Canadian Triage and Acuity Scale constants.

    Level 1 is the most urgent. The burden model only uses the level through
    its urgency factor (6 - level).
    """
    LABELS = {
        1: "Resuscitation",
        2: "Emergent",
        3: "Urgent",
        4: "Less Urgent",
        5: "Non-Urgent",
    }

    # Target time to physician in minutes
    TARGET_TIMES = {
        1: 0,
        2: 15,
        3: 30,
        4: 60,
        5: 120,
    }

    @classmethod
    def is_valid(cls, level: int) -> bool:
        """Whether level is on the scale."""
        return level in cls.LABELS

    @classmethod
    def get_label(cls, level: int) -> str:
        """Get human-readable label for a CTAS level."""
        return cls.LABELS.get(level, f"Unknown ({level})")

    @classmethod
    def urgency_factor(cls, level: int) -> int:
        """5 for the most urgent level down to 1 for the least urgent."""
        return 6 - level
