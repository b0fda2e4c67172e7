"""Tests for detection module."""

import pytest
import numpy as np
from knobfinder.config import DetectorConfig
from knobfinder.detection.accumulator import (
    accumulate,
    accumulate_angle_sweep,
    accumulate_ring_samples,
    extract_peaks,
    grid_stride,
)
from knobfinder.detection.circle_detector import CircleDetector
from knobfinder.detection.results import CircleDetection, DetectedCircle
from knobfinder.detection.ring_scorer import RingScorer, ring_offsets
from knobfinder.detection.strategies import (
    DEFAULT_STRATEGIES,
    angle_sweep_strategy,
    directional_strategy,
    grid_ring_strategy,
    strategy_name,
)
from knobfinder.preprocessing.gradients import GradientField, preprocess


def _no_circles(field, config):
    return []


def _scrambled(field, seed=7):
    """Same edge magnitudes with random gradient directions."""
    rng = np.random.default_rng(seed)
    gx = rng.standard_normal(field.gx.shape).astype(np.float32) * field.magnitude
    gy = rng.standard_normal(field.gy.shape).astype(np.float32) * field.magnitude
    return GradientField(gx, gy, field.magnitude, field.threshold, field.scale, field.original_size)


class TestAccumulator:
    """Test center voting."""

    def test_directional_peak_at_center(self, ring):
        """Test that votes pile up at the ring center."""
        field = ring(80, (40, 40), 20)
        grid = accumulate(field, 0.5, (10, 30, 2))

        assert grid.dtype == np.uint16
        assert grid.shape == (80, 80)
        assert grid[40, 40] == grid.max()
        assert grid[40, 40] > 0

    def test_no_votes_near_border(self, ring):
        """Test the 2 px vote margin."""
        field = ring(80, (40, 40), 20)
        grid = accumulate(field, 0.5, (10, 60, 1))

        assert grid[:2, :].sum() == 0
        assert grid[-2:, :].sum() == 0
        assert grid[:, :2].sum() == 0
        assert grid[:, -2:].sum() == 0

    def test_flat_field_has_no_votes(self):
        """Test field without edges."""
        zeros = np.zeros((30, 30), dtype=np.float32)
        field = GradientField(zeros, zeros, zeros, 0.1)
        assert accumulate(field, 0.1, (5, 10, 1)).sum() == 0
        assert accumulate_angle_sweep(field, 0.1, (5, 10, 1)).sum() == 0

    def test_zero_gradient_pixels_do_not_vote(self, ring):
        """Test that strong pixels without a direction are skipped."""
        field = ring(80, (40, 40), 20)
        field = GradientField(np.zeros_like(field.gx), np.zeros_like(field.gy),
                              field.magnitude, 0.5)
        assert accumulate(field, 0.5, (10, 30, 2)).sum() == 0

    def test_angle_sweep_votes_inside_ring(self, ring):
        """Test isotropic voting."""
        field = ring(80, (40, 40), 20)
        grid = accumulate_angle_sweep(field, 0.5, (10, 30, 2))
        assert grid[40, 40] > 0

    def test_grid_stride(self):
        """Test ring-sampler grid spacing."""
        assert grid_stride(240, 240) == 3
        assert grid_stride(800, 400) == 5
        assert grid_stride(1200, 960) == 8
        assert grid_stride(50, 50) == 3

    def test_ring_samples(self, ring):
        """Test that the grid center on the ring collects a full ring."""
        field = ring(100, (50, 50), 20)
        grid = accumulate_ring_samples(field, 0.5, (10, 30, 2), min_hits=14)

        assert grid[50, 50] == 36
        assert grid.max() == 36

    def test_ring_samples_small_image(self, ring):
        """Test that no grid fits when the radius range is too large."""
        field = ring(40, (20, 20), 10)
        assert accumulate_ring_samples(field, 0.5, (5, 30, 1), min_hits=14).sum() == 0


class TestExtractPeaks:
    """Test peak extraction."""

    def test_single_peak(self):
        """Test one maximum."""
        grid = np.zeros((10, 10), dtype=np.uint16)
        grid[4, 6] = 10
        assert extract_peaks(grid, 0.12) == [(6, 4, 10)]

    def test_ties_are_all_peaks(self):
        """Test that equal neighbours both qualify, in row-major order."""
        grid = np.zeros((10, 10), dtype=np.uint16)
        grid[5, 5] = 10
        grid[5, 6] = 10
        assert extract_peaks(grid, 0.12) == [(5, 5, 10), (6, 5, 10)]

    def test_minimum_of_two_votes(self):
        """Test the absolute floor."""
        grid = np.zeros((10, 10), dtype=np.uint16)
        grid[3, 3] = 1
        assert extract_peaks(grid, 0.0) == []

    def test_fraction(self):
        """Test the relative acceptance level."""
        grid = np.zeros((12, 12), dtype=np.uint16)
        grid[3, 3] = 100
        grid[8, 8] = 10
        grid[8, 3] = 13
        peaks = extract_peaks(grid, 0.12)
        assert peaks == [(3, 3, 100), (3, 8, 13)]

    def test_margin(self):
        """Test that peaks near the border are ignored."""
        grid = np.zeros((10, 10), dtype=np.uint16)
        grid[0, 5] = 10
        grid[5, 5] = 10
        assert extract_peaks(grid, 0.1) == [(5, 5, 10)]
        assert extract_peaks(grid, 0.1, margin=6) == []

    def test_empty_grid(self):
        """Test empty and silent grids."""
        assert extract_peaks(np.zeros((0, 0), dtype=np.uint16), 0.1) == []
        assert extract_peaks(np.zeros((5, 5), dtype=np.uint16), 0.1) == []


class TestRingScorer:
    """Test ring sampling."""

    def test_ring_offsets(self):
        """Test sample offsets."""
        dx, dy = ring_offsets(20)
        assert len(dx) == 36
        assert (dx[0], dy[0]) == (20, 0)
        assert (dx[9], dy[9]) == (0, 20)
        assert (dx[18], dy[18]) == (-20, 0)

    def test_estimate_radius(self, ring):
        """Test radius estimate on an ideal ring."""
        scorer = RingScorer(ring(80, (40, 40), 20))
        assert abs(scorer.estimate_radius((40, 40), 5, 30) - 20) <= 1

    def test_estimate_radius_prefers_smaller(self):
        """Test that ties keep the smallest radius."""
        ones = np.ones((80, 80), dtype=np.float32)
        scorer = RingScorer(GradientField(ones, ones, ones, 0.5))
        assert scorer.estimate_radius((40, 40), 5, 30) == 5

    def test_estimate_radius_no_edges(self):
        """Test blank field."""
        zeros = np.zeros((40, 40), dtype=np.float32)
        scorer = RingScorer(GradientField(zeros, zeros, zeros, 0.5))
        assert scorer.estimate_radius((20, 20), 6, 12) == 6

    def test_quality_full_ring(self, ring):
        """Test quality of a perfect ring."""
        scorer = RingScorer(ring(80, (40, 40), 20))
        quality = scorer.quality((40, 40), 20)

        assert quality.coverage == 1.0
        assert quality.alignment == 1.0
        assert quality.hits == 36
        assert quality.passes()

    def test_quality_half_ring(self, ring):
        """Test that half a ring still passes."""
        scorer = RingScorer(ring(80, (40, 40), 20, mask=lambda dx, dy: dx > 0))
        quality = scorer.quality((40, 40), 20)
        assert quality.coverage == pytest.approx(0.5)
        assert quality.passes()

    def test_quality_quarter_ring_fails(self, ring):
        """Test coverage gate."""
        scorer = RingScorer(ring(80, (40, 40), 20, mask=lambda dx, dy: (dx > 0) & (dy > 0)))
        quality = scorer.quality((40, 40), 20)
        assert quality.coverage < 0.38
        assert not quality.passes()

    def test_quality_tangential_fails(self, ring):
        """Test alignment gate."""
        scorer = RingScorer(ring(80, (40, 40), 20, tangential=True))
        quality = scorer.quality((40, 40), 20)
        assert quality.coverage == 1.0
        assert quality.alignment < 0.28
        assert not quality.passes()

    def test_quality_off_image(self, ring):
        """Test that samples outside the image are misses."""
        scorer = RingScorer(ring(80, (40, 40), 20))
        quality = scorer.quality((3, 3), 20)
        assert quality.hits < 36

    def test_refine_center(self, ring):
        """Test center refinement from an offset peak."""
        scorer = RingScorer(ring(80, (40, 40), 20))
        x, y = scorer.refine_center((42, 39), 20)
        assert np.hypot(x - 40, y - 40) <= 1.5

    def test_refine_center_keeps_peak_on_plateau(self, ring):
        """Test that equal scores on a wide ring keep the starting center."""
        scorer = RingScorer(ring(120, (60, 60), 30, half_width=3))
        assert scorer.refine_center((60, 60), 30) == (60, 60)

    def test_refine_center_nearest_tie(self):
        """Test that ties resolve to the offset nearest the start."""
        ones = np.ones((40, 40), dtype=np.float32)
        scorer = RingScorer(GradientField(ones, np.zeros_like(ones), ones, 0.5))
        assert scorer.refine_center((20, 20), 10) == (20, 20)

    def test_score_peak(self, ring):
        """Test conversion of a peak into a circle."""
        scorer = RingScorer(ring(80, (40, 40), 20))
        circle = scorer.score_peak(40, 40, 123, 10, 30)

        assert isinstance(circle, DetectedCircle)
        assert circle.score == 123
        assert abs(circle.radius - 20) <= 1
        assert circle.distance_to(DetectedCircle((40.0, 40.0), 20.0, 0.0)) <= 1.5

    def test_score_peak_rejects_empty_area(self):
        """Test that a peak without a ring is dropped."""
        zeros = np.zeros((60, 60), dtype=np.float32)
        scorer = RingScorer(GradientField(zeros, zeros, zeros, 0.1))
        assert scorer.score_peak(30, 30, 50, 5, 20) is None


class TestStrategies:
    """Test the individual strategies."""

    def test_default_order(self):
        """Test strategy chain order."""
        assert [strategy_name(s) for s in DEFAULT_STRATEGIES] == [
            'directional', 'angle_sweep', 'grid_ring']

    def test_strategy_name_for_callables(self):
        """Test naming of arbitrary callables."""
        assert strategy_name(_no_circles) == '_no_circles'

    def test_directional_finds_disc(self, single_disc):
        """Test primary pass on a clean disc."""
        field, _, _, _ = preprocess(single_disc, 900)
        config = DetectorConfig(min_radius=10, max_radius=40, radius_step=4)
        circles = directional_strategy(field, config)

        assert circles
        best = max(circles, key=lambda c: c.score)
        assert np.hypot(best.x - 100, best.y - 100) <= 2

    def test_angle_sweep_disabled(self, single_disc):
        """Test that the angle sweep can be switched off."""
        field, _, _, _ = preprocess(single_disc, 900)
        config = DetectorConfig(enable_angle_fallback=False)
        assert angle_sweep_strategy(field, config) is None

    def test_grid_ring_on_ideal_ring(self, ring):
        """Test ring sampler without gradient directions."""
        field = ring(100, (50, 50), 20)
        config = DetectorConfig(min_radius=10, max_radius=30, radius_step=2)
        circles = grid_ring_strategy(field, config)

        assert DetectedCircle((50.0, 50.0), 20.0, 36.0) in circles


class TestCircleDetector:
    """Test the strategy chain."""

    def test_detector_initialization(self):
        """Test CircleDetector defaults."""
        detector = CircleDetector()
        assert detector.config == DetectorConfig()
        assert detector.strategies == DEFAULT_STRATEGIES

    def test_primary_result_skips_fallbacks(self, single_disc):
        """Test that later strategies are not run once one succeeds."""
        calls = []

        def primary(field, config):
            calls.append('primary')
            return [DetectedCircle((50.0, 50.0), 10.0, 5.0)]

        def fallback(field, config):
            calls.append('fallback')
            return []

        field, _, _, _ = preprocess(single_disc, 900)
        detection = CircleDetector(strategies=[primary, fallback]).detect_field(field)

        assert calls == ['primary']
        assert detection.strategy == 'primary'
        assert len(detection) == 1

    def test_fallback_on_scrambled_directions(self, single_disc):
        """Test that a fallback finds the disc when the primary pass yields nothing."""
        field, _, _, _ = preprocess(single_disc, 900)
        field = _scrambled(field)
        config = DetectorConfig(min_radius=10, max_radius=40, radius_step=4)
        detector = CircleDetector(config, strategies=[
            _no_circles, angle_sweep_strategy, grid_ring_strategy])

        detection = detector.detect_field(field)

        assert detection.strategy in ('angle_sweep', 'grid_ring')
        assert len(detection) >= 1
        assert np.hypot(detection[0].x - 100, detection[0].y - 100) < 24

    def test_grid_ring_when_angle_sweep_disabled(self, single_disc):
        """Test that the ring sampler runs when the angle sweep is off."""
        field, _, _, _ = preprocess(single_disc, 900)
        config = DetectorConfig(min_radius=10, max_radius=40, radius_step=4,
                                enable_angle_fallback=False)
        detector = CircleDetector(config, strategies=[
            _no_circles, angle_sweep_strategy, grid_ring_strategy])

        detection = detector.detect_field(field)

        assert detection.strategy == 'grid_ring'
        assert np.hypot(detection[0].x - 100, detection[0].y - 100) < 24

    def test_all_strategies_empty(self, single_disc):
        """Test chain exhaustion."""
        field, _, _, _ = preprocess(single_disc, 900)
        detection = CircleDetector(strategies=[_no_circles]).detect_field(field)

        assert isinstance(detection, CircleDetection)
        assert len(detection) == 0
        assert detection.strategy is None
        assert detection.working_size == (200, 200)

    def test_nms_applied_to_strategy_output(self, single_disc):
        """Test that strategy output is suppressed and capped."""
        def crowded(field, config):
            return [DetectedCircle((50.0 + i, 50.0), 10.0, float(i)) for i in range(5)]

        field, _, _, _ = preprocess(single_disc, 900)
        detection = CircleDetector(strategies=[crowded]).detect_field(field)

        assert len(detection) == 1
        assert detection[0].score == 4.0
        assert detection.metadata['candidates'] == 5


class TestResults:
    """Test result types."""

    def test_detected_circle(self):
        """Test DetectedCircle helpers."""
        circle = DetectedCircle((10.0, 20.0), 5.0, 3.0)
        assert (circle.x, circle.y) == (10.0, 20.0)
        assert circle.bounding_box() == (5.0, 15.0, 15.0, 25.0)
        assert circle.scaled(2.0) == DetectedCircle((20.0, 40.0), 10.0, 3.0)
        assert circle.to_dict() == {'x': 10.0, 'y': 20.0, 'radius': 5.0, 'score': 3.0}

    def test_detection_is_a_sequence(self):
        """Test sequence behaviour and list equality."""
        circles = (DetectedCircle((10.0, 20.0), 5.0, 3.0), DetectedCircle((40.0, 20.0), 5.0, 1.0))
        detection = CircleDetection(circles, 0.5, (100, 50), (200, 100), 'directional')

        assert len(detection) == 2
        assert detection[0] is circles[0]
        assert list(detection) == list(circles)
        assert detection == list(circles)

    def test_to_original(self):
        """Test mapping back to original pixels."""
        detection = CircleDetection((DetectedCircle((10.0, 20.0), 5.0, 3.0),), 0.5, (100, 50), (200, 100))
        assert detection.to_original() == (DetectedCircle((20.0, 40.0), 10.0, 3.0),)
