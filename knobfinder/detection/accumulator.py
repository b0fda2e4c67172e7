"""Hough-style center voting and peak extraction."""

import logging
import math
from typing import List, Tuple

import numpy as np
from scipy.ndimage import maximum_filter

from knobfinder.detection.ring_scorer import EDGE_MARGIN, ring_offsets
from knobfinder.preprocessing.gradients import GradientField

logger = logging.getLogger(__name__)

VOTE_MAX = np.iinfo(np.uint16).max
MIN_GRADIENT_LENGTH = 1e-5

RadiusRange = Tuple[int, int, int]


def radii_in(radius_range: RadiusRange) -> np.ndarray:
    r_min, r_max, r_step = radius_range
    return np.arange(r_min, r_max + 1, max(1, r_step))


def edge_pixels(field: GradientField, threshold: float) -> Tuple[np.ndarray, np.ndarray]:
    """(xs, ys) of interior pixels whose magnitude reaches the threshold, row-major."""
    h, w = field.height, field.width
    if w < 3 or h < 3:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    interior = field.magnitude[1:h - 1, 1:w - 1] >= threshold
    ys, xs = np.nonzero(interior)
    return xs.astype(np.int64) + 1, ys.astype(np.int64) + 1


def _cast(votes: np.ndarray, tx: np.ndarray, ty: np.ndarray, w: int, h: int):
    cx = np.floor(tx + 0.5).astype(np.int64)
    cy = np.floor(ty + 0.5).astype(np.int64)
    ok = ((cx >= EDGE_MARGIN) & (cy >= EDGE_MARGIN)
          & (cx < w - EDGE_MARGIN) & (cy < h - EDGE_MARGIN))
    votes += np.bincount(cy[ok] * w + cx[ok], minlength=w * h)


def _as_grid(votes: np.ndarray, w: int, h: int) -> np.ndarray:
    return np.minimum(votes, VOTE_MAX).astype(np.uint16).reshape(h, w)


def accumulate(field: GradientField, threshold: float, radius_range: RadiusRange) -> np.ndarray:
    """
    Gradient-directed center votes.

    Every edge pixel votes at distance r both against and along its
    gradient, for each radius in range, so raised knobs and recessed
    bezels both collect votes at their centers.

    Args:
        field: Gradient field of the working image
        threshold: Edge threshold on the normalised magnitude
        radius_range: (r_min, r_max, r_step) in working pixels

    Returns:
        uint16 vote grid of shape (height, width), saturating
    """
    w, h = field.width, field.height
    votes = np.zeros(w * h, dtype=np.int64)
    xs, ys = edge_pixels(field, threshold)
    if xs.size:
        gx = field.gx[ys, xs].astype(np.float64)
        gy = field.gy[ys, xs].astype(np.float64)
        length = np.hypot(gx, gy)
        keep = length >= MIN_GRADIENT_LENGTH
        xs, ys = xs[keep].astype(np.float64), ys[keep].astype(np.float64)
        nx, ny = gx[keep] / length[keep], gy[keep] / length[keep]

        for r in radii_in(radius_range):
            _cast(votes, xs - r * nx, ys - r * ny, w, h)
            _cast(votes, xs + r * nx, ys + r * ny, w, h)

    logger.debug("Directional votes from %d edge pixels, max %d", xs.size,
                 int(votes.max()) if votes.size else 0)
    return _as_grid(votes, w, h)


def accumulate_angle_sweep(field: GradientField, threshold: float, radius_range: RadiusRange,
                           directions: int = 12) -> np.ndarray:
    """
    Isotropic center votes that ignore gradient direction.

    Each edge pixel votes inward along a fixed fan of evenly spaced
    directions for every radius in range.
    """
    w, h = field.width, field.height
    votes = np.zeros(w * h, dtype=np.int64)
    xs, ys = edge_pixels(field, threshold)
    if xs.size:
        xs, ys = xs.astype(np.float64), ys.astype(np.float64)
        angles = np.arange(directions) / directions * 2.0 * math.pi
        for r in radii_in(radius_range):
            for ca, sa in zip(np.cos(angles), np.sin(angles)):
                _cast(votes, xs - r * ca, ys - r * sa, w, h)

    logger.debug("Angle-sweep votes from %d edge pixels, max %d", xs.size,
                 int(votes.max()) if votes.size else 0)
    return _as_grid(votes, w, h)


def grid_stride(width: int, height: int) -> int:
    """Spacing of candidate centers for the ring sampler."""
    side = min(width, height)
    step = side // 120 if side % 120 == 0 else side // 80
    return max(3, step)


def accumulate_ring_samples(field: GradientField, floor: float, radius_range: RadiusRange,
                            min_hits: int, samples: int = 36) -> np.ndarray:
    """
    Grid of candidate centers scored by raw ring sampling.

    For each center on a coarse grid, counts ring samples at or above
    `floor` for every radius in range and keeps the best count. Centers
    whose best ring reaches `min_hits` receive that count as votes.
    """
    w, h = field.width, field.height
    votes = np.zeros((h, w), dtype=np.int64)
    r_min, r_max, _ = radius_range
    stride = grid_stride(w, h)
    ys = np.arange(r_max + 2, h - r_max - 2, stride)
    xs = np.arange(r_max + 2, w - r_max - 2, stride)
    if ys.size == 0 or xs.size == 0:
        return votes.astype(np.uint16)

    cy, cx = np.meshgrid(ys, xs, indexing='ij')
    cy, cx = cy.ravel(), cx.ravel()
    strong = field.magnitude >= floor

    best = np.zeros(cx.size, dtype=np.int64)
    for r in radii_in(radius_range):
        dx, dy = ring_offsets(int(r), samples)
        hits = strong[cy[:, None] + dy[None, :], cx[:, None] + dx[None, :]].sum(axis=1)
        best = np.maximum(best, hits)

    voted = best >= min_hits
    votes[cy[voted], cx[voted]] += best[voted]
    logger.debug("Ring sampler: %d of %d grid centers voted (stride %d)",
                 int(voted.sum()), cx.size, stride)
    return np.minimum(votes, VOTE_MAX).astype(np.uint16)


def extract_peaks(grid: np.ndarray, fraction: float, margin: int = 1) -> List[Tuple[int, int, int]]:
    """
    Local maxima of a vote grid.

    A cell qualifies when its count reaches max(2, fraction * max count) and
    no cell in its 3x3 neighbourhood is larger. Cells closer than `margin`
    to the border are ignored.

    Returns:
        (x, y, votes) tuples in row-major order
    """
    if grid.size == 0:
        return []
    max_votes = int(grid.max())
    if max_votes == 0:
        return []

    accept = max(2, int(max_votes * fraction))
    h, w = grid.shape
    neighbourhood_max = maximum_filter(grid, size=3, mode='nearest')
    peaks = (grid >= accept) & (grid == neighbourhood_max)

    inner = np.zeros_like(peaks)
    inner[margin:h - margin, margin:w - margin] = True
    ys, xs = np.nonzero(peaks & inner)
    logger.debug("%d peaks at or above %d votes (max %d)", xs.size, accept, max_votes)
    return [(int(x), int(y), int(grid[y, x])) for x, y in zip(xs, ys)]
