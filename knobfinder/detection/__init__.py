"""Circle detection pipeline."""

from .results import DetectedCircle, CircleDetection
from .circle_detector import CircleDetector, detect
from .nms import nms

__all__ = ['DetectedCircle', 'CircleDetection', 'CircleDetector', 'detect', 'nms']
