"""
Tests for environments/speaker_field.py

Loudness field, balance and speaker placement.
"""

import numpy as np
import pytest

from binaural_paths.core.geometry import Point
from binaural_paths.environments.speaker_field import (
    FieldConfig,
    Source,
    SpeakerField,
    TargetMode,
)


class TestTargetMode:
    """Tests for TargetMode parsing."""

    def test_parse_strings(self):
        assert TargetMode.parse("either") is TargetMode.EITHER
        assert TargetMode.parse("LEFT") is TargetMode.LEFT
        assert TargetMode.parse(" right ") is TargetMode.RIGHT
        assert TargetMode.parse(TargetMode.LEFT) is TargetMode.LEFT

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            TargetMode.parse("center")


class TestIntensity:
    """Tests for the intensity model."""

    def test_at_source_is_capped_by_epsilon(self):
        """Standing on a speaker gives 1 / epsilon^2."""
        field = SpeakerField.default()
        value = field.intensity(field.left.position, field.left)
        assert value == pytest.approx(1.0 / 0.2 ** 2)

    def test_monotonically_decreasing(self):
        """Intensity falls with distance."""
        field = SpeakerField.default()
        origin = field.left.position.to_array()
        pts = origin + np.array([[d, 0.0] for d in np.linspace(0.0, 30.0, 50)])

        values = field.intensity(pts, field.left)

        assert values.shape == (50,)
        assert np.all(values > 0.0)
        assert np.all(np.diff(values) < 0.0)

    def test_power_scales_intensity(self):
        """A louder source is proportionally louder."""
        field = SpeakerField.default()
        loud = Source("left", field.left.position, power=3.0)
        p = Point(0.0, 0.0)

        assert field.intensity(p, loud) == pytest.approx(3.0 * field.intensity(p, field.left))


class TestBalance:
    """Tests for left/right balance."""

    def test_shares_sum_to_one(self):
        """Balance rows sum to 1 and stay in [0, 1]."""
        field = SpeakerField.default()
        rng = np.random.default_rng(42)
        pts = rng.uniform(-20.0, 20.0, size=(200, 2))

        shares = field.balance(pts)

        assert shares.shape == (200, 2)
        assert np.allclose(shares.sum(axis=1), 1.0)
        assert np.all((shares >= 0.0) & (shares <= 1.0))

    def test_single_point_returns_tuple(self):
        """A single point gives a (left, right) tuple."""
        field = SpeakerField.default()
        left, right = field.balance(field.left.position)

        assert left + right == pytest.approx(1.0)
        assert left > 0.99

    def test_far_away_point_stays_finite(self):
        """Underflowing intensities still give finite shares."""
        field = SpeakerField.default()
        left, right = field.balance(Point(1e160, 0.0))

        assert np.isfinite(left) and np.isfinite(right)
        shares = field.balance(np.array([[1e160, 0.0], [0.0, 0.0]]))
        assert np.all(np.isfinite(shares))

    def test_midpoint_is_even(self):
        """Halfway between equal speakers is an even split."""
        field = SpeakerField.default()
        mid = field.left.position.lerp(field.right.position, 0.5)

        left, right = field.balance(mid)

        assert left == pytest.approx(0.5)
        assert right == pytest.approx(0.5)


class TestReward:
    """Tests for the targeting reward."""

    def test_modes(self):
        """Each mode picks the right intensity."""
        field = SpeakerField.default()
        pts = np.array([[-10.0, -5.0], [11.0, 6.0], [0.0, 0.0]])
        il, ir = field.intensities(pts)

        assert np.allclose(field.reward(pts, TargetMode.LEFT), il)
        assert np.allclose(field.reward(pts, TargetMode.RIGHT), ir)
        assert np.allclose(field.reward(pts, TargetMode.EITHER), np.maximum(il, ir))

    def test_default_mode_is_either(self):
        field = SpeakerField.default()
        p = field.right.position
        assert field.reward(p) == field.reward(p, TargetMode.EITHER)


class TestRepositionSources:
    """Tests for reposition_sources."""

    def test_far_apart_unchanged(self):
        """Well separated speakers land where asked."""
        field = SpeakerField.default()
        moved = field.reposition_sources(Point(-5.0, 0.0), Point(5.0, 0.0))

        assert moved.left.position == Point(-5.0, 0.0)
        assert moved.right.position == Point(5.0, 0.0)
        assert field.left.position == Point(-10.0, -6.0)  # original untouched

    def test_too_close_is_clamped(self):
        """Right speaker is pushed along x to the minimum separation."""
        field = SpeakerField.default()
        moved = field.reposition_sources(Point(0.0, 0.0), Point(0.5, 0.3))

        assert moved.right.position == Point(2.0, 0.3)
        assert moved.separation >= field.config.min_separation

    def test_clamp_keeps_side(self):
        """A right speaker placed to the left is pushed further left."""
        field = SpeakerField.default()
        moved = field.reposition_sources(Point(0.0, 0.0), Point(-0.5, 0.0))

        assert moved.right.position == Point(-2.0, 0.0)

    def test_coincident_speakers(self):
        """Identical positions are separated, never rejected."""
        field = SpeakerField(
            start=Point(0.0, 0.0),
            goal=Point(10.0, 0.0),
            left=Source("left", Point(-3.0, 0.0)),
            right=Source("right", Point(3.0, 0.0)),
            config=FieldConfig(min_separation=5.0),
        )
        moved = field.reposition_sources(Point(1.0, 1.0), Point(1.0, 1.0))

        assert moved.separation == pytest.approx(5.0)
        assert moved.right.position == Point(6.0, 1.0)

    def test_minimum_separation_holds_for_random_requests(self):
        """Any request ends at least min_separation apart."""
        field = SpeakerField.default()
        rng = np.random.default_rng(7)
        for _ in range(100):
            left, right = rng.uniform(-3.0, 3.0, size=(2, 2))
            moved = field.reposition_sources(Point.from_array(left), Point.from_array(right))
            assert moved.separation >= field.config.min_separation - 1e-12


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self):
        field = SpeakerField.default()
        restored = SpeakerField.from_dict(field.to_dict())

        assert restored.start == field.start
        assert restored.goal == field.goal
        assert restored.left.position == field.left.position
        assert restored.right.position == field.right.position
        assert restored.config == field.config

    def test_missing_keys_use_reference_scene(self):
        restored = SpeakerField.from_dict({"start": [0.0, 0.0]})

        assert restored.start == Point(0.0, 0.0)
        assert restored.goal == SpeakerField.default().goal

    def test_loading_applies_clamp(self):
        restored = SpeakerField.from_dict({"left": [0.0, 0.0], "right": [0.0, 0.0]})
        assert restored.separation >= restored.config.min_separation
