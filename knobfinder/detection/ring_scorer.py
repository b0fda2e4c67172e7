"""
Ring sampling shared by every detection strategy.

A candidate circle is judged by sampling the gradient field at evenly
spaced points on its rim: how many angular sectors carry edge pixels
(coverage), and what fraction of those edge pixels have a gradient that
points along the radius (alignment). The same sampler also picks the
best radius for a candidate center and nudges the center to the offset
with the best ring.
"""

import math
from functools import lru_cache
from typing import NamedTuple, Optional, Tuple

import numpy as np

from knobfinder.detection.results import DetectedCircle
from knobfinder.preprocessing.gradients import GradientField

# Radius estimation
RADIUS_SAMPLES = 12
RADIUS_EDGE_FLOOR = 0.2

# Quality scoring
QUALITY_SAMPLES = 36
QUALITY_SECTORS = 12
RADIAL_DOT_MIN = 0.4

# Acceptance gate, tuned against real equipment photographs
MIN_COVERAGE = 0.38
MIN_ALIGNMENT = 0.28
MIN_HITS = 8

# Center refinement
REFINE_WINDOW_FRACTION = 0.10
COVERAGE_WEIGHT = 0.75
ALIGNMENT_WEIGHT = 0.25

# Samples must stay this far inside the working image
EDGE_MARGIN = 2


class RingQuality(NamedTuple):
    coverage: float
    alignment: float
    hits: int

    def passes(self) -> bool:
        return (self.coverage >= MIN_COVERAGE
                and self.alignment >= MIN_ALIGNMENT
                and self.hits >= MIN_HITS)


def _round(values):
    # Half away from zero for the non-negative coordinates that matter;
    # anything negative is rejected by the bounds check anyway.
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5).astype(np.int64)


@lru_cache(maxsize=None)
def _unit_ring(samples: int) -> Tuple[np.ndarray, np.ndarray]:
    angles = np.arange(samples, dtype=np.float64) / samples * 2.0 * math.pi
    cos, sin = np.cos(angles), np.sin(angles)
    cos.setflags(write=False)
    sin.setflags(write=False)
    return cos, sin


@lru_cache(maxsize=256)
def ring_offsets(radius: int, samples: int = QUALITY_SAMPLES) -> Tuple[np.ndarray, np.ndarray]:
    """Integer (dx, dy) offsets of `samples` evenly spaced points on a ring."""
    cos, sin = _unit_ring(samples)
    dx = np.sign(cos) * np.floor(np.abs(radius * cos) + 0.5)
    dy = np.sign(sin) * np.floor(np.abs(radius * sin) + 0.5)
    dx = dx.astype(np.int64)
    dy = dy.astype(np.int64)
    dx.setflags(write=False)
    dy.setflags(write=False)
    return dx, dy


class RingScorer:
    """Scores candidate circles against one gradient field."""

    def __init__(self, field: GradientField, threshold: Optional[float] = None):
        """
        Args:
            field: Gradient field of the working image
            threshold: Edge threshold for quality sampling; defaults to the
                field's adaptive threshold
        """
        self.field = field
        self.threshold = field.threshold if threshold is None else float(threshold)
        self.width = field.width
        self.height = field.height

    def _inside(self, sx: np.ndarray, sy: np.ndarray) -> np.ndarray:
        return ((sx >= EDGE_MARGIN) & (sy >= EDGE_MARGIN)
                & (sx < self.width - EDGE_MARGIN) & (sy < self.height - EDGE_MARGIN))

    def estimate_radius(self, center: Tuple[float, float], r_min: int, r_max: int) -> int:
        """
        Radius whose ring crosses the most strong edges.

        Samples 12 points per radius for every integer radius in
        [r_min, r_max]. Ties keep the smallest radius.
        """
        if r_max < r_min:
            return r_min
        radii = np.arange(r_min, r_max + 1, dtype=np.float64)
        cos, sin = _unit_ring(RADIUS_SAMPLES)
        sx = _round(center[0] + radii[:, None] * cos[None, :])
        sy = _round(center[1] + radii[:, None] * sin[None, :])
        inside = self._inside(sx, sy)

        hits = np.zeros(sx.shape, dtype=bool)
        hits[inside] = self.field.magnitude[sy[inside], sx[inside]] > RADIUS_EDGE_FLOOR
        counts = hits.sum(axis=1)

        return int(radii[int(np.argmax(counts))])

    def estimate_radius_dense(self, center: Tuple[int, int], r_min: int, r_max: int,
                              floor: float) -> int:
        """
        Radius with the most 36-point ring samples at or above `floor`.

        Used by the grid sampler, whose candidate centers already sit far
        enough from the border for every ring in range.
        """
        best_r, best_hits = r_min, -1
        cx, cy = int(center[0]), int(center[1])
        magnitude = self.field.magnitude
        for r in range(r_min, r_max + 1):
            dx, dy = ring_offsets(r)
            hits = int(np.count_nonzero(magnitude[cy + dy, cx + dx] >= floor))
            if hits > best_hits:
                best_r, best_hits = r, hits
        return best_r

    def quality_batch(self, cx: np.ndarray, cy: np.ndarray, radius: int,
                      threshold: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Ring quality for many centers sharing one radius.

        Returns:
            (coverage, alignment, hits) arrays, one entry per center
        """
        thr = self.threshold if threshold is None else threshold
        cx = np.asarray(cx, dtype=np.float64).reshape(-1, 1)
        cy = np.asarray(cy, dtype=np.float64).reshape(-1, 1)
        cos, sin = _unit_ring(QUALITY_SAMPLES)
        sx = _round(cx + radius * cos[None, :])
        sy = _round(cy + radius * sin[None, :])
        inside = self._inside(sx, sy)

        hit = np.zeros(sx.shape, dtype=bool)
        hit[inside] = self.field.magnitude[sy[inside], sx[inside]] >= thr

        # Radial alignment: |cos| between gradient and center-to-sample vector
        gx = np.zeros(sx.shape, dtype=np.float64)
        gy = np.zeros(sx.shape, dtype=np.float64)
        gx[hit] = self.field.gx[sy[hit], sx[hit]]
        gy[hit] = self.field.gy[sy[hit], sx[hit]]
        glen = np.maximum(1e-5, np.hypot(gx, gy))
        rx = sx - cx
        ry = sy - cy
        rlen = np.maximum(1e-5, np.hypot(rx, ry))
        dot = (gx / glen) * (rx / rlen) + (gy / glen) * (ry / rlen)
        radial = hit & (np.abs(dot) > RADIAL_DOT_MIN)

        sectors_hit = hit.reshape(hit.shape[0], QUALITY_SECTORS, -1).any(axis=2)

        hits = hit.sum(axis=1)
        coverage = sectors_hit.sum(axis=1) / float(QUALITY_SECTORS)
        alignment = np.where(hits > 0, radial.sum(axis=1) / np.maximum(hits, 1), 0.0)
        return coverage, alignment, hits

    def quality(self, center: Tuple[float, float], radius: int,
                threshold: Optional[float] = None) -> RingQuality:
        """Coverage, radial alignment and raw hit count of one ring."""
        coverage, alignment, hits = self.quality_batch(
            np.array([center[0]]), np.array([center[1]]), radius, threshold)
        return RingQuality(float(coverage[0]), float(alignment[0]), int(hits[0]))

    def refine_center(self, center: Tuple[float, float], radius: int,
                      threshold: Optional[float] = None) -> Tuple[int, int]:
        """
        Best-scoring integer center within +-10% of the radius.

        Equal scores go to the offset nearest the starting center, then row
        by row. Offsets that would put the center within 2 px of the border
        are skipped.
        """
        d = max(1, int(_round(radius * REFINE_WINDOW_FRACTION)))
        x0 = int(_round(center[0]))
        y0 = int(_round(center[1]))
        offsets = np.arange(-d, d + 1)
        oy, ox = np.meshgrid(offsets, offsets, indexing='ij')
        ox, oy = ox.ravel(), oy.ravel()
        # lexsort: last key is primary
        order = np.lexsort((ox, oy, ox * ox + oy * oy))
        cx = x0 + ox[order]
        cy = y0 + oy[order]
        valid = self._inside(cx, cy)
        if not valid.any():
            return x0, y0

        cx, cy = cx[valid], cy[valid]
        coverage, alignment, _ = self.quality_batch(cx, cy, radius, threshold)
        score = coverage * COVERAGE_WEIGHT + alignment * ALIGNMENT_WEIGHT
        best = int(np.argmax(score))
        return int(cx[best]), int(cy[best])

    def score_peak(self, x: int, y: int, votes: float, r_min: int, r_max: int,
                   refine: bool = True) -> Optional[DetectedCircle]:
        """
        Turn an accumulator peak into a circle, or None if the ring is weak.

        Estimates the radius, optionally refines the center, then applies
        the coverage / alignment / hit-count gate.
        """
        radius = self.estimate_radius((x, y), r_min, r_max)
        center = self.refine_center((x, y), radius) if refine else (int(x), int(y))
        quality = self.quality(center, radius)
        if not quality.passes():
            return None
        return DetectedCircle((float(center[0]), float(center[1])), float(radius), float(votes))
