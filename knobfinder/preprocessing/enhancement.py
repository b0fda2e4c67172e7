"""Image normalisation and smoothing ahead of gradient extraction."""

import cv2
import numpy as np
from skimage.transform import resize
from typing import Optional, Tuple

from knobfinder.config import get_preprocessing_config

# Rec. 709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


class ImageEnhancer:
    """Turns a caller-owned bitmap into a smoothed luminance field."""

    def __init__(self, contrast: Optional[float] = None, blur_sigma: Optional[float] = None):
        """
        Initialize image enhancer.

        Args:
            contrast: Contrast gain applied around mid-grey; defaults to
                DEFAULT_CONFIG["preprocessing"]["contrast"]
            blur_sigma: Gaussian sigma (px) used to suppress sensor noise;
                defaults to DEFAULT_CONFIG["preprocessing"]["blur_sigma"]
        """
        defaults = get_preprocessing_config()
        self.contrast = defaults["contrast"] if contrast is None else contrast
        self.blur_sigma = defaults["blur_sigma"] if blur_sigma is None else blur_sigma

    def enhance(self, image: np.ndarray, max_side: float) -> Tuple[np.ndarray, float]:
        """
        Apply full enhancement pipeline.

        Args:
            image: Gray, RGB or RGBA image (uint8, uint16 or float in 0..1)
            max_side: Long-edge cap for the working image

        Returns:
            (float32 luminance in 0..1, scale factor working/original)
        """
        rgb = self.to_rgb(image)
        rgb, scale = self.downscale(rgb, max_side)
        gray = self.luma(rgb)
        gray = self.apply_contrast(gray)
        gray = self.reduce_noise(gray)
        return gray, scale

    def to_rgb(self, image: np.ndarray) -> np.ndarray:
        """Convert the input to float32 RGB in 0..1, premultiplying alpha."""
        if not isinstance(image, np.ndarray):
            raise TypeError(f"Expected a numpy array, got {type(image).__name__}")

        if image.ndim == 2:
            image = image[:, :, np.newaxis]
        if image.ndim != 3 or image.shape[2] not in (1, 3, 4):
            raise ValueError(f"Unsupported image shape {image.shape}")

        if image.dtype == np.uint8:
            data = image.astype(np.float32) / 255.0
        elif image.dtype == np.uint16:
            data = image.astype(np.float32) / 65535.0
        else:
            data = np.clip(image.astype(np.float32), 0.0, 1.0)

        channels = data.shape[2]
        if channels == 1:
            return np.repeat(data, 3, axis=2)
        if channels == 4:
            return data[:, :, :3] * data[:, :, 3:4]
        return data

    def downscale(self, rgb: np.ndarray, max_side: float) -> Tuple[np.ndarray, float]:
        """Shrink so the long edge equals max_side; smaller images pass through."""
        h, w = rgb.shape[:2]
        scale = downscale_factor(w, h, max_side)
        if scale >= 1.0:
            return rgb, 1.0

        new_w = max(1, int(w * scale))
        new_h = max(1, int(h * scale))
        resized = resize(rgb, (new_h, new_w), order=1, mode='edge',
                         anti_aliasing=True, preserve_range=True)
        return resized.astype(np.float32), scale

    def luma(self, rgb: np.ndarray) -> np.ndarray:
        """Perceptual luminance of an RGB field."""
        return (rgb @ LUMA_WEIGHTS).astype(np.float32)

    def apply_contrast(self, gray: np.ndarray) -> np.ndarray:
        """Stretch contrast around mid-grey."""
        return np.clip((gray - 0.5) * self.contrast + 0.5, 0.0, 1.0).astype(np.float32)

    def reduce_noise(self, gray: np.ndarray) -> np.ndarray:
        """Apply Gaussian blur to reduce noise."""
        if self.blur_sigma <= 0:
            return gray
        return cv2.GaussianBlur(gray, (0, 0), sigmaX=self.blur_sigma,
                                borderType=cv2.BORDER_REPLICATE)


def downscale_factor(width: int, height: int, max_side: float) -> float:
    """Scale that brings the long edge down to max_side (never upscales)."""
    side = max(width, height)
    if side > int(max_side):
        return float(max_side) / float(side)
    return 1.0
