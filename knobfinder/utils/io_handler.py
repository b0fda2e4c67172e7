"""I/O handling for faceplate images and JSON output."""

import cv2
import json
import numpy as np
from pathlib import Path
from typing import Dict, Optional, Union


class JSONWriter:
    """Write detection results to JSON."""

    @staticmethod
    def save_results(output_dict: Union[Dict, list], output_path: str, indent: int = 2):
        """Save results to JSON file."""
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(output_dict, f, indent=indent)

    @staticmethod
    def load_results(input_path: str) -> Dict:
        """Load results from JSON file."""
        with open(input_path, 'r') as f:
            return json.load(f)


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert an OpenCV gray/BGR/BGRA uint8 image to RGBA."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)


def load_image(image_path: str) -> Optional[np.ndarray]:
    """Load image from file as RGBA uint8, or None if it cannot be decoded."""
    image = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    if image is None:
        return None
    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    return to_rgba(image)


def save_image(image: np.ndarray, output_path: str):
    """Save an RGB or RGBA image to file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    if image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    elif image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    cv2.imwrite(str(output_path), image)
