from .transformer import CoordinateTransformer

__all__ = ['CoordinateTransformer']
