"""Synthetic faceplates and gradient fields shared by the test suite."""

import cv2
import numpy as np
import pytest

from knobfinder.preprocessing.gradients import GradientField

BACKGROUND = 60
FILL = 200


def draw_faceplate(width, height, circles, background=BACKGROUND, fill=FILL):
    """Opaque RGBA panel with filled discs given as (x, y, radius)."""
    image = np.full((height, width, 4), background, dtype=np.uint8)
    image[:, :, 3] = 255
    for x, y, r in circles:
        cv2.circle(image, (x, y), r, (fill, fill, fill, 255), -1)
    return image


def ring_field(size, center, radius, half_width=1.0, threshold=0.5,
               tangential=False, mask=None):
    """
    Ideal gradient field of a thin ring.

    Magnitude is 1 within half_width of the ring and 0 elsewhere; gradients
    point away from the center (or along the ring when tangential=True).
    `mask(dx, dy)` can blank parts of the ring.
    """
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float32)
    dx = xx - center[0]
    dy = yy - center[1]
    dist = np.maximum(np.hypot(dx, dy), 1e-6)
    magnitude = (np.abs(dist - radius) <= half_width).astype(np.float32)
    if mask is not None:
        magnitude *= mask(dx, dy).astype(np.float32)

    if tangential:
        gx, gy = -dy / dist, dx / dist
    else:
        gx, gy = dx / dist, dy / dist
    return GradientField(
        (gx * magnitude).astype(np.float32),
        (gy * magnitude).astype(np.float32),
        magnitude,
        threshold,
        1.0,
        (size, size),
    )


@pytest.fixture
def faceplate():
    return draw_faceplate


@pytest.fixture
def ring():
    return ring_field


@pytest.fixture
def single_disc():
    """200x200 panel with one disc of radius 24 at (100, 100)."""
    return draw_faceplate(200, 200, [(100, 100, 24)])
