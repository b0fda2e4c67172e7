"""Sobel gradient field and adaptive edge threshold."""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from knobfinder.preprocessing.enhancement import ImageEnhancer

logger = logging.getLogger(__name__)

# The threshold keeps at least the upper 75% of edge strengths, but never
# drops below this floor so faint faceplates still retain some edges.
EDGE_THRESHOLD_FLOOR = 0.10
EDGE_THRESHOLD_PERCENTILE = 0.25


@dataclass
class GradientField:
    """Per-call gradient buffers at working resolution."""
    gx: np.ndarray
    gy: np.ndarray
    magnitude: np.ndarray
    threshold: float = 0.0
    scale: float = 1.0
    original_size: Tuple[int, int] = (0, 0)

    @property
    def width(self) -> int:
        return int(self.magnitude.shape[1])

    @property
    def height(self) -> int:
        return int(self.magnitude.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.magnitude.size == 0

    @classmethod
    def empty(cls, original_size: Tuple[int, int] = (0, 0)) -> "GradientField":
        blank = np.zeros((0, 0), dtype=np.float32)
        return cls(blank, blank.copy(), blank.copy(), 0.0, 1.0, original_size)


def percentile(values: np.ndarray, p: float) -> float:
    """Order statistic at floor((n - 1) * p) of the flattened values."""
    flat = np.asarray(values, dtype=np.float32).ravel()
    n = flat.size
    if n == 0:
        return 0.0
    k = max(0, min(n - 1, int((n - 1) * p)))
    return float(np.partition(flat, k)[k])


def normalize(values: np.ndarray) -> np.ndarray:
    """Min/max normalise to 0..1."""
    if values.size == 0:
        return values.astype(np.float32)
    lo = float(values.min())
    hi = float(values.max())
    span = max(1e-6, hi - lo)
    return ((values - lo) / span).astype(np.float32)


def compute_gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Sobel gradients and normalised magnitude.

    Args:
        gray: float32 luminance

    Returns:
        (gx, gy, magnitude) with magnitude scaled to 0..1
    """
    gray = np.ascontiguousarray(gray, dtype=np.float32)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3, borderType=cv2.BORDER_REPLICATE)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3, borderType=cv2.BORDER_REPLICATE)
    magnitude = normalize(np.hypot(gx, gy))
    return gx, gy, magnitude


def edge_threshold(magnitude: np.ndarray) -> float:
    return max(EDGE_THRESHOLD_FLOOR, percentile(magnitude, EDGE_THRESHOLD_PERCENTILE))


def preprocess(image: np.ndarray, max_side: float,
               enhancer: Optional[ImageEnhancer] = None) -> Tuple[GradientField, int, int, float]:
    """
    Downscale, smooth and differentiate an image.

    Args:
        image: Gray, RGB or RGBA bitmap; never modified
        max_side: Long-edge cap for the working image
        enhancer: Optional pre-configured ImageEnhancer

    Returns:
        (field, working_width, working_height, threshold). A zero-area
        image yields an empty field with zero threshold.
    """
    enhancer = enhancer or ImageEnhancer()
    rgb = enhancer.to_rgb(image)
    h, w = rgb.shape[:2]
    if w == 0 or h == 0:
        logger.debug("Zero-area image (%dx%d), nothing to preprocess", w, h)
        return GradientField.empty((w, h)), 0, 0, 0.0

    gray, scale = enhancer.enhance(rgb, max_side)
    gx, gy, magnitude = compute_gradients(gray)
    threshold = edge_threshold(magnitude)

    field = GradientField(gx, gy, magnitude, threshold, scale, (w, h))
    logger.debug("Working image %dx%d (scale %.4f), edge threshold %.3f",
                 field.width, field.height, scale, threshold)
    return field, field.width, field.height, threshold
