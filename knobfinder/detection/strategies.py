"""
Detection strategies, tried in order until one yields circles.

1. directional: gradient-directed voting (primary)
2. angle_sweep: isotropic voting for fields with unreliable directions
3. grid_ring: coarse ring sampling that needs only edge magnitude
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from knobfinder.config import DetectorConfig
from knobfinder.detection.accumulator import (
    accumulate,
    accumulate_angle_sweep,
    accumulate_ring_samples,
    extract_peaks,
)
from knobfinder.detection.results import DetectedCircle
from knobfinder.detection.ring_scorer import QUALITY_SAMPLES, RingScorer
from knobfinder.preprocessing.gradients import GradientField, percentile

logger = logging.getLogger(__name__)

Strategy = Callable[[GradientField, DetectorConfig], Optional[List[DetectedCircle]]]

DIRECTIONAL_PEAK_FRACTION = 0.12

ANGLE_SWEEP_PEAK_FRACTION = 0.10
ANGLE_SWEEP_DIRECTIONS = 12

GRID_FLOOR_MIN = 0.06
GRID_FLOOR_PERCENTILE = 0.08
GRID_MIN_RING_COVERAGE = 0.40
GRID_PEAK_FRACTION = 0.40


def _score_peaks(scorer: RingScorer, peaks: Iterable[Tuple[int, int, int]],
                 r_min: int, r_max: int) -> List[DetectedCircle]:
    circles = []
    for x, y, votes in peaks:
        circle = scorer.score_peak(x, y, votes, r_min, r_max)
        if circle is not None:
            circles.append(circle)
    return circles


def directional_strategy(field: GradientField, config: DetectorConfig) -> Optional[List[DetectedCircle]]:
    """Primary pass: votes cast along each edge pixel's gradient normal."""
    radius_range = config.radius_range
    grid = accumulate(field, field.threshold, radius_range)
    peaks = extract_peaks(grid, DIRECTIONAL_PEAK_FRACTION)
    circles = _score_peaks(RingScorer(field), peaks, radius_range[0], radius_range[1])
    logger.debug("directional: %d of %d peaks accepted", len(circles), len(peaks))
    return circles


def angle_sweep_strategy(field: GradientField, config: DetectorConfig) -> Optional[List[DetectedCircle]]:
    """First fallback: votes along a fixed fan of directions, looser peak level."""
    if not config.enable_angle_fallback:
        return None
    radius_range = config.radius_range
    grid = accumulate_angle_sweep(field, field.threshold, radius_range, ANGLE_SWEEP_DIRECTIONS)
    peaks = extract_peaks(grid, ANGLE_SWEEP_PEAK_FRACTION)
    circles = _score_peaks(RingScorer(field), peaks, radius_range[0], radius_range[1])
    logger.debug("angle_sweep: %d of %d peaks accepted", len(circles), len(peaks))
    return circles


def grid_ring_strategy(field: GradientField, config: DetectorConfig) -> Optional[List[DetectedCircle]]:
    """Last resort: ring sampling on a coarse grid of centers, magnitude only."""
    r_min, r_max, r_step = config.radius_range
    floor = max(GRID_FLOOR_MIN, percentile(field.magnitude, GRID_FLOOR_PERCENTILE))
    min_hits = int(GRID_MIN_RING_COVERAGE * QUALITY_SAMPLES)

    grid = accumulate_ring_samples(field, floor, (r_min, r_max, r_step), min_hits, QUALITY_SAMPLES)
    peaks = extract_peaks(grid, GRID_PEAK_FRACTION, margin=r_max + 2)

    scorer = RingScorer(field)
    circles = []
    for x, y, votes in peaks:
        radius = scorer.estimate_radius_dense((x, y), r_min, r_max, floor)
        if scorer.quality((x, y), radius).passes():
            circles.append(DetectedCircle((float(x), float(y)), float(radius), float(votes)))
    logger.debug("grid_ring: %d of %d candidates accepted (floor %.3f)", len(circles), len(peaks), floor)
    return circles


DEFAULT_STRATEGIES: Tuple[Strategy, ...] = (
    directional_strategy,
    angle_sweep_strategy,
    grid_ring_strategy,
)


def strategy_name(strategy: Strategy) -> str:
    name = getattr(strategy, '__name__', type(strategy).__name__)
    if name.endswith('_strategy'):
        name = name[:-len('_strategy')]
    return name
