"""Luminance, smoothing and gradient extraction."""

from .enhancement import ImageEnhancer
from .gradients import GradientField, preprocess, percentile

__all__ = ['ImageEnhancer', 'GradientField', 'preprocess', 'percentile']
