"""Result types returned by the circle detector."""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class DetectedCircle:
    """
    A candidate control position.

    Attributes:
        center: (x, y) in working (downscaled) pixels
        radius: Radius in working pixels
        score: Relative confidence; only comparable within one detect call
    """
    center: Tuple[float, float]
    radius: float
    score: float

    @property
    def x(self) -> float:
        return self.center[0]

    @property
    def y(self) -> float:
        return self.center[1]

    def distance_to(self, other: "DetectedCircle") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> "DetectedCircle":
        """Multiply center and radius by factor; score is unchanged."""
        return DetectedCircle((self.x * factor, self.y * factor), self.radius * factor, self.score)

    def bounding_box(self) -> Tuple[float, float, float, float]:
        """(x0, y0, x1, y1) of the square enclosing the circle."""
        return (self.x - self.radius, self.y - self.radius,
                self.x + self.radius, self.y + self.radius)

    def to_dict(self) -> Dict[str, float]:
        return {
            'x': float(self.x),
            'y': float(self.y),
            'radius': float(self.radius),
            'score': float(self.score)
        }


@dataclass(frozen=True, eq=False)
class CircleDetection(Sequence):
    """
    Ordered detections (descending score) plus the working-space geometry.

    Behaves as a read-only sequence of DetectedCircle and compares equal to
    a list holding the same circles.
    """
    circles: Tuple[DetectedCircle, ...] = ()
    scale: float = 1.0
    working_size: Tuple[int, int] = (0, 0)
    original_size: Tuple[int, int] = (0, 0)
    strategy: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, index):
        return self.circles[index]

    def __len__(self) -> int:
        return len(self.circles)

    def __eq__(self, other) -> bool:
        if isinstance(other, CircleDetection):
            return (self.circles == other.circles
                    and self.scale == other.scale
                    and self.working_size == other.working_size
                    and self.original_size == other.original_size
                    and self.strategy == other.strategy)
        if isinstance(other, (list, tuple)):
            return list(self.circles) == list(other)
        return NotImplemented

    __hash__ = None

    def to_original(self) -> Tuple[DetectedCircle, ...]:
        """Circles mapped back to original-image pixels."""
        if self.scale <= 0:
            return self.circles
        return tuple(c.scaled(1.0 / self.scale) for c in self.circles)

    def __repr__(self) -> str:
        return (f"CircleDetection(n={len(self.circles)}, strategy={self.strategy!r}, "
                f"scale={self.scale:.4f}, working_size={self.working_size})")
