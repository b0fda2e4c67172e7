"""
knobfinder - circular control detection for faceplate photographs.

Scans a photo of a hardware faceplate and proposes knob and button
positions (center, radius, confidence) for review.
"""

__version__ = '1.0.0'

from .config import DetectorConfig, DEFAULT_CONFIG, load_config
from .detection import CircleDetection, CircleDetector, DetectedCircle, detect, nms

__all__ = [
    'DetectorConfig', 'DEFAULT_CONFIG', 'load_config',
    'CircleDetection', 'CircleDetector', 'DetectedCircle', 'detect', 'nms',
]
