"""
Burden Modeling Agent - Vulnerability Scoring Tests

Run with: pytest tests/test_vulnerability.py -v
"""

import logging

import pytest

from burden_modeling.config import DEFAULT_VULNERABILITY_WEIGHTS
from burden_modeling.vulnerability import (
    ExplicitMultiplier,
    ProfileSource,
    VulnerabilityProfile,
    apply_vulnerability_floor,
    resolve_vulnerability_source,
    score_profile,
    score_vulnerability,
)


class TestSourceResolution:
    """Tests for collapsing the two optional request fields."""

    def test_profile_wins_over_explicit_multiplier(self):
        profile = VulnerabilityProfile(mobility=True)
        source = resolve_vulnerability_source(2.0, profile)

        assert source == ProfileSource(profile)

    def test_explicit_multiplier_alone(self):
        assert resolve_vulnerability_source(1.7) == ExplicitMultiplier(1.7)

    def test_neither_defaults_to_one(self):
        assert resolve_vulnerability_source() == ExplicitMultiplier(1.0)


class TestScoring:
    """Tests for the additive profile score."""

    def test_all_flags_sum_every_weight(self):
        profile = VulnerabilityProfile(
            chronic_pain=True, mobility=True, cognitive=True,
            sensory=True, language=True, alone=True,
        )
        assert score_profile(profile, DEFAULT_VULNERABILITY_WEIGHTS) == pytest.approx(0.95)

    def test_single_flag(self):
        profile = VulnerabilityProfile(chronic_pain=True)
        assert score_profile(profile, DEFAULT_VULNERABILITY_WEIGHTS) == pytest.approx(0.25)

    def test_empty_profile_scores_zero(self):
        assert score_profile(VulnerabilityProfile(), DEFAULT_VULNERABILITY_WEIGHTS) == 0

    def test_flag_without_weight_is_ignored(self):
        profile = VulnerabilityProfile(language=True, alone=True)
        assert score_profile(profile, {"language": 0.3}) == pytest.approx(0.3)

    def test_explicit_value_passes_through(self):
        assert score_vulnerability(ExplicitMultiplier(1.7), DEFAULT_VULNERABILITY_WEIGHTS) == 1.7

    def test_negative_value_scores_zero(self):
        assert score_vulnerability(ExplicitMultiplier(-3), DEFAULT_VULNERABILITY_WEIGHTS) == 0.0

    def test_unknown_source_rejected(self):
        with pytest.raises(TypeError):
            score_vulnerability(1.5, DEFAULT_VULNERABILITY_WEIGHTS)

    def test_active_flags_follow_declaration_order(self):
        profile = VulnerabilityProfile(alone=True, chronic_pain=True)
        assert profile.active_flags() == ["chronic_pain", "alone"]


class TestFloor:
    """Tests for the degenerate-multiplier floor."""

    def test_zero_is_floored_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="burden_modeling.vulnerability"):
            assert apply_vulnerability_floor(0.0, 0.01) == 0.01
        assert "flooring" in caplog.text

    def test_value_above_floor_unchanged(self):
        assert apply_vulnerability_floor(0.2, 0.01) == 0.2
