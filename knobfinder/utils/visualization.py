"""Visualization utilities for debugging and tuning."""

import cv2
import numpy as np
from typing import Sequence, Tuple

from knobfinder.detection.results import DetectedCircle
from knobfinder.preprocessing.gradients import GradientField


def draw_circles(image: np.ndarray, circles: Sequence[DetectedCircle],
                 color: Tuple[int, ...] = (255, 0, 0),
                 thickness: int = 2) -> np.ndarray:
    """Draw detected circles and their centers on a copy of the image."""
    output = np.ascontiguousarray(image).copy()
    if output.ndim == 3 and output.shape[2] == 4 and len(color) == 3:
        color = tuple(color) + (255,)
    for circle in circles:
        center = (int(round(circle.x)), int(round(circle.y)))
        cv2.circle(output, center, int(round(circle.radius)), color, thickness)
        cv2.circle(output, center, 2, color, -1)
    return output


def edges_preview(field: GradientField, threshold: float = None) -> np.ndarray:
    """uint8 mask (0/255) of the pixels that count as edges for voting."""
    thr = field.threshold if threshold is None else threshold
    return (field.magnitude >= thr).astype(np.uint8) * 255
