"""Performance metrics and evaluation."""

from contextlib import contextmanager
from time import perf_counter
from typing import Dict, List, Sequence, Tuple

from knobfinder.detection.results import DetectedCircle


class PerformanceMetrics:
    """Track performance metrics."""

    def __init__(self):
        self.start_times = {}
        self.durations = {}

    def start_timer(self, name: str):
        """Start timing an operation."""
        self.start_times[name] = perf_counter()

    def stop_timer(self, name: str) -> float:
        """Stop timing and return duration in milliseconds."""
        if name not in self.start_times:
            return 0.0
        duration = (perf_counter() - self.start_times.pop(name)) * 1000
        self.durations[name] = duration
        return duration

    @contextmanager
    def timed(self, name: str):
        """Time the enclosed block under `name`."""
        self.start_timer(name)
        try:
            yield
        finally:
            self.stop_timer(name)

    def get_summary(self) -> Dict[str, float]:
        """Get summary of all timings."""
        return {name: round(ms, 2) for name, ms in self.durations.items()}


class AccuracyMetrics:
    """Compare detections against known circles."""

    @staticmethod
    def calculate_precision_recall(true_positives: int, false_positives: int,
                                   false_negatives: int) -> Dict[str, float]:
        """Calculate precision, recall, and F1 score."""
        precision = true_positives / (true_positives + false_positives) if (true_positives + false_positives) > 0 else 0
        recall = true_positives / (true_positives + false_negatives) if (true_positives + false_negatives) > 0 else 0
        f1 = 2 * (precision * recall) / (precision + recall) if (precision + recall) > 0 else 0

        return {
            'precision': precision,
            'recall': recall,
            'f1_score': f1
        }

    @staticmethod
    def match_circles(detected: Sequence[DetectedCircle],
                      ground_truth: Sequence[Tuple[float, float, float]],
                      center_tolerance: float = 2.0,
                      radius_tolerance: float = 2.0) -> List[Tuple[int, int]]:
        """
        Greedily pair detections with ground-truth circles.

        Args:
            detected: Detections, strongest first
            ground_truth: (x, y, radius) tuples
            center_tolerance: Max center distance for a match (px)
            radius_tolerance: Max radius difference for a match (px)

        Returns:
            (detected_index, ground_truth_index) pairs
        """
        pairs = []
        used = set()
        for i, circle in enumerate(detected):
            best, best_dist = None, None
            for j, (x, y, r) in enumerate(ground_truth):
                if j in used:
                    continue
                dist = ((circle.x - x) ** 2 + (circle.y - y) ** 2) ** 0.5
                if dist <= center_tolerance and abs(circle.radius - r) <= radius_tolerance:
                    if best_dist is None or dist < best_dist:
                        best, best_dist = j, dist
            if best is not None:
                used.add(best)
                pairs.append((i, best))
        return pairs
