"""Utility functions for image processing"""
from .image import (
    decode_base64_image,
    decode_image_bytes,
    strip_data_uri
)

__all__ = [
    'decode_base64_image',
    'decode_image_bytes',
    'strip_data_uri'
]
