"""Non-maximum suppression for detected circles."""

from typing import List, Sequence

from knobfinder.detection.results import DetectedCircle


def nms(circles: Sequence[DetectedCircle], radius: float) -> List[DetectedCircle]:
    """
    Keep the strongest circle of every cluster.

    Circles are visited by descending score (stable for equal scores); each
    kept circle removes every remaining circle whose center lies closer
    than `radius`.
    """
    remaining = sorted(circles, key=lambda c: c.score, reverse=True)
    kept = []
    while remaining:
        best = remaining.pop(0)
        kept.append(best)
        remaining = [c for c in remaining if c.distance_to(best) >= radius]
    return kept


def drop_nested(circles: Sequence[DetectedCircle]) -> List[DetectedCircle]:
    """
    Remove inner rings of stronger circles.

    A wide, blurred rim also supports small rings tangent to it from the
    inside. A circle is dropped when its center lies inside a stronger kept
    circle and its radius is smaller. Output is sorted by descending score
    (stable for equal scores).
    """
    ordered = sorted(circles, key=lambda c: c.score, reverse=True)
    kept = []
    for circle in ordered:
        nested = any(circle.distance_to(outer) < outer.radius and circle.radius < outer.radius
                     for outer in kept)
        if not nested:
            kept.append(circle)
    return kept


def suppress(circles: Sequence[DetectedCircle], radius: float, max_results: int) -> List[DetectedCircle]:
    """NMS, nested-ring removal, then truncation to max_results."""
    return drop_nested(nms(circles, radius))[:max(0, max_results)]
