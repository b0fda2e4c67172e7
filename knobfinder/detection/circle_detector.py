"""Circle detection by gradient-directed Hough voting with fallbacks."""

import logging
import numpy as np
from typing import Optional, Sequence

from knobfinder.config import DetectorConfig
from knobfinder.detection.nms import suppress
from knobfinder.detection.results import CircleDetection
from knobfinder.detection.strategies import DEFAULT_STRATEGIES, Strategy, strategy_name
from knobfinder.preprocessing.enhancement import ImageEnhancer
from knobfinder.preprocessing.gradients import GradientField, preprocess

logger = logging.getLogger(__name__)

# Smallest working side that still leaves a center 2 px from every edge
MIN_WORKING_SIDE = 5


class CircleDetector:
    """Detects knob and button silhouettes on a faceplate photograph."""

    def __init__(self, config: Optional[DetectorConfig] = None,
                 strategies: Optional[Sequence[Strategy]] = None,
                 enhancer: Optional[ImageEnhancer] = None):
        """
        Args:
            config: Detector tuning; defaults to DetectorConfig()
            strategies: Ordered strategy chain; the first non-empty result wins
            enhancer: Preprocessing settings (contrast, blur)
        """
        self.config = config or DetectorConfig()
        self.strategies = tuple(DEFAULT_STRATEGIES if strategies is None else strategies)
        self.enhancer = enhancer or ImageEnhancer()

    def detect(self, image: np.ndarray) -> CircleDetection:
        """
        Detect circles in image.

        Args:
            image: Gray, RGB or RGBA bitmap; never modified

        Returns:
            CircleDetection ordered by descending score, at most
            config.max_results long, in working (downscaled) pixels
        """
        field, _, _, _ = preprocess(image, self.config.max_side, self.enhancer)
        return self.detect_field(field)

    def detect_field(self, field: GradientField) -> CircleDetection:
        """Run the strategy chain on an already computed gradient field."""
        empty = CircleDetection((), field.scale, (field.width, field.height), field.original_size)
        if min(field.width, field.height) < MIN_WORKING_SIDE:
            logger.debug("Working image %dx%d too small, skipping detection",
                         field.width, field.height)
            return empty

        for strategy in self.strategies:
            name = strategy_name(strategy)
            circles = strategy(field, self.config)
            if not circles:
                logger.debug("Strategy %s found nothing", name)
                continue

            kept = suppress(circles, self.config.nms_radius, self.config.max_results)
            logger.debug("Strategy %s: %d candidates, %d after NMS", name, len(circles), len(kept))
            return CircleDetection(
                tuple(kept),
                field.scale,
                (field.width, field.height),
                field.original_size,
                strategy=name,
                metadata={'threshold': field.threshold, 'candidates': len(circles)},
            )

        logger.debug("No circles found after %d strategies", len(self.strategies))
        return empty


def detect(image: np.ndarray, config: Optional[DetectorConfig] = None) -> CircleDetection:
    """Detect circular controls in an image with the default strategy chain."""
    return CircleDetector(config).detect(image)
