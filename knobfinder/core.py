"""
knobfinder Core Processor
Main entry point for turning a faceplate photo into draft control regions
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from knobfinder import __version__
from knobfinder.config import DetectorConfig
from knobfinder.coordinates.transformer import CoordinateTransformer
from knobfinder.detection.circle_detector import CircleDetector
from knobfinder.preprocessing.gradients import preprocess
from knobfinder.utils.io_handler import load_image
from knobfinder.utils.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)


class FaceplateProcessor:
    """Runs circle detection and maps the results into faceplate space"""

    def __init__(self, config: Optional[DetectorConfig] = None):
        """
        Initialize processor

        Args:
            config: Detector configuration (optional)
        """
        self.config = config or DetectorConfig()
        self.version = __version__
        self.detector = CircleDetector(self.config)

    def process_image(self, image_input: Union[str, Path, np.ndarray]) -> Dict[str, Any]:
        """
        Detect controls on a single faceplate image

        Args:
            image_input: Path to image file or RGBA/RGB/gray numpy array

        Returns:
            JSON-serialisable dictionary with detected controls
        """
        start_time = time.time()
        metrics = PerformanceMetrics()

        if isinstance(image_input, (str, Path)):
            image = load_image(image_input)
            image_id = Path(image_input).stem
        else:
            image = image_input
            image_id = f"image_{int(time.time())}"

        if image is None:
            raise ValueError(f"Failed to load image from {image_input}")

        height, width = image.shape[:2]

        try:
            with metrics.timed('preprocess'):
                field, _, _, _ = preprocess(image, self.config.max_side, self.detector.enhancer)
            with metrics.timed('detect'):
                detection = self.detector.detect_field(field)

            transformer = CoordinateTransformer.from_detection(detection)
            controls = []
            for rank, circle in enumerate(detection):
                rect = transformer.circle_to_normalized_rect(circle)
                if rect is None:
                    continue
                controls.append({
                    "rank": rank,
                    "score": float(circle.score),
                    "working": circle.to_dict(),
                    "original": transformer.circle_to_original(circle).to_dict(),
                    "normalized_rect": [round(v, 6) for v in rect],
                })

            status = "success" if controls else "empty"
            logger.info("%s: %d controls (%s)", image_id, len(controls), detection.strategy or "none")

            return {
                "system": "knobfinder",
                "version": self.version,
                "timestamp": datetime.now().isoformat(),
                "image_id": image_id,
                "status": status,
                "detection": {
                    "strategy": detection.strategy,
                    "count": len(controls),
                    "scale": detection.scale,
                    "working_size": list(detection.working_size),
                },
                "controls": controls,
                "config": self.config.to_dict(),
                "processing_metadata": {
                    "processing_time_ms": round((time.time() - start_time) * 1000, 2),
                    "stage_times_ms": metrics.get_summary(),
                    "image_size": {
                        "width": int(width),
                        "height": int(height)
                    },
                    "errors": []
                }
            }

        except Exception as e:
            logger.exception("Detection failed for %s", image_id)
            return {
                "system": "knobfinder",
                "version": self.version,
                "timestamp": datetime.now().isoformat(),
                "image_id": image_id,
                "status": "failed",
                "controls": [],
                "processing_metadata": {
                    "processing_time_ms": round((time.time() - start_time) * 1000, 2),
                    "errors": [str(e)]
                }
            }
