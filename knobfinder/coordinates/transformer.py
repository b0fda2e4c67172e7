"""Coordinate transformation utilities."""

import numpy as np
from typing import Optional, Tuple, Union

from knobfinder.detection.results import CircleDetection, DetectedCircle

PointsLike = Union[np.ndarray, Tuple[float, float]]

# Drafts narrower than this (original px) after clamping are dropped
MIN_DRAFT_SIDE_PX = 3.0


class CoordinateTransformer:
    """Map between working pixels, original pixels and normalised faceplate space."""

    def __init__(self, scale: float = 1.0, original_size: Tuple[int, int] = (0, 0)):
        """
        Initialize coordinate transformer.

        Args:
            scale: Working / original ratio used by the detector (<= 1)
            original_size: (width, height) of the original image in pixels
        """
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.scale = float(scale)
        self.original_size = (int(original_size[0]), int(original_size[1]))

    @classmethod
    def from_detection(cls, detection: CircleDetection) -> "CoordinateTransformer":
        return cls(detection.scale, detection.original_size)

    @staticmethod
    def _as_points(points: PointsLike) -> np.ndarray:
        if isinstance(points, tuple):
            points = np.array([points], dtype=np.float64)
        return np.asarray(points, dtype=np.float64).reshape(-1, 2)

    def working_to_original(self, points: PointsLike) -> np.ndarray:
        """
        Transform working-space pixels to original-image pixels.

        Args:
            points: (x, y) tuple or Nx2 array

        Returns:
            Nx2 array of original pixel coordinates
        """
        return self._as_points(points) / self.scale

    def original_to_working(self, points: PointsLike) -> np.ndarray:
        return self._as_points(points) * self.scale

    def to_normalized(self, points: PointsLike) -> Optional[np.ndarray]:
        """
        Transform original pixels to 0..1 faceplate coordinates (top-left origin).

        Returns:
            Nx2 array, or None if the original size is unknown
        """
        w, h = self.original_size
        if w <= 0 or h <= 0:
            return None
        return self._as_points(points) / np.array([[w, h]], dtype=np.float64)

    def from_normalized(self, points: PointsLike) -> Optional[np.ndarray]:
        w, h = self.original_size
        if w <= 0 or h <= 0:
            return None
        return self._as_points(points) * np.array([[w, h]], dtype=np.float64)

    def circle_to_original(self, circle: DetectedCircle) -> DetectedCircle:
        return circle.scaled(1.0 / self.scale)

    def circle_to_normalized_rect(self, circle: DetectedCircle) -> Optional[Tuple[float, float, float, float]]:
        """
        Normalised (x, y, w, h) region a control draft occupies.

        The circle's bounding square is mapped to original pixels and clamped
        to the image. Returns None when the original size is unknown or the
        clamped region is under 3 px on a side.
        """
        w, h = self.original_size
        if w <= 0 or h <= 0:
            return None

        x0, y0, x1, y1 = self.circle_to_original(circle).bounding_box()
        x0, x1 = max(0.0, x0), min(float(w), x1)
        y0, y1 = max(0.0, y0), min(float(h), y1)
        if x1 - x0 < MIN_DRAFT_SIDE_PX or y1 - y0 < MIN_DRAFT_SIDE_PX:
            return None
        return (x0 / w, y0 / h, (x1 - x0) / w, (y1 - y0) / h)
