"""
Vulnerability scoring.

Turns an accessibility profile, or an explicit multiplier supplied by the
caller, into the single non-negative multiplier the burden engine scales
hazard by.

The score is ADDITIVE: each flag that is set contributes its calibration
weight and the weights are summed. An all-false profile therefore scores 0,
which the engine floors (see ``apply_vulnerability_floor``) before any
division happens.
"""

import logging
from dataclasses import dataclass, fields
from typing import Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VulnerabilityProfile:
    """Accessibility flags captured at intake. All independent booleans."""
    chronic_pain: bool = False
    mobility: bool = False
    cognitive: bool = False
    sensory: bool = False
    language: bool = False
    alone: bool = False

    @classmethod
    def flag_names(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    def active_flags(self) -> list:
        """Names of the flags that are set, in declaration order."""
        return [name for name in self.flag_names() if getattr(self, name)]


@dataclass(frozen=True)
class ExplicitMultiplier:
    """Caller already knows the multiplier."""
    value: float


@dataclass(frozen=True)
class ProfileSource:
    """Multiplier must be derived from the profile."""
    profile: VulnerabilityProfile


VulnerabilitySource = Union[ExplicitMultiplier, ProfileSource]


def resolve_vulnerability_source(
    multiplier: Optional[float] = None,
    profile: Optional[VulnerabilityProfile] = None,
) -> VulnerabilitySource:
    """
    Collapse the two optional request fields into one tagged case.

    The profile wins when both are present. With neither, the patient is
    treated as non-vulnerable (multiplier 1.0).
    """
    if profile is not None:
        return ProfileSource(profile)
    if multiplier is not None:
        return ExplicitMultiplier(multiplier)
    return ExplicitMultiplier(1.0)


def score_profile(profile: VulnerabilityProfile, weights: Mapping[str, float]) -> float:
    """Sum the calibration weights of every flag set on the profile."""
    return sum(weights.get(name, 0.0) for name in profile.active_flags())


def score_vulnerability(source: VulnerabilitySource, weights: Mapping[str, float]) -> float:
    """
    Resolve a vulnerability source to its raw multiplier.

    Args:
        source: ExplicitMultiplier or ProfileSource
        weights: flag name -> additive calibration weight

    Returns:
        Multiplier >= 0. Not floored; see apply_vulnerability_floor.
    """
    if isinstance(source, ProfileSource):
        return max(0.0, score_profile(source.profile, weights))
    if isinstance(source, ExplicitMultiplier):
        return max(0.0, float(source.value))
    raise TypeError(f"Unsupported vulnerability source: {type(source).__name__}")


def apply_vulnerability_floor(multiplier: float, floor: float) -> float:
    """
    Keep the multiplier strictly positive.

    The baseline curve and the equity gap both divide by the multiplier,
    so a zero (all-false profile, or an explicit 0) is raised to ``floor``.
    """
    if multiplier < floor:
        logger.warning(
            f"Degenerate vulnerability multiplier {multiplier:.4f}; "
            f"flooring to {floor}"
        )
        return floor
    return multiplier
