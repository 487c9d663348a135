"""Image processing utilities.

This module provides utility functions for turning raw bytes and base64
payloads (optionally wrapped in a data URI) into OpenCV images.
"""

import base64
import binascii

import cv2
import numpy as np

from ..errors import DecodeError


def strip_data_uri(payload: str) -> str:
    """Return the base64 part of a payload.

    Args:
        payload: Base64 encoded image string, optionally with data URL prefix.
            Example formats:
            - "data:image/jpeg;base64,/9j/4AAQSkZ..."
            - "/9j/4AAQSkZ..." (without prefix)

    Returns:
        The payload with any data URL prefix removed.
    """
    if ';base64,' in payload:
        return payload.split(';base64,', 1)[1]
    if payload.startswith('data:') and ',' in payload:
        # Fallback: split by comma if the specific delimiter isn't found
        return payload.split(',', 1)[1]
    return payload


def decode_image_bytes(image_bytes: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPEG, PNG, ...) to an OpenCV image.

    Args:
        image_bytes: Raw encoded image.

    Returns:
        Decoded image as numpy array in BGR format, at its natural size.

    Raises:
        DecodeError: If the bytes cannot be read as an image.
    """
    if not image_bytes:
        raise DecodeError("Image data is empty")

    nparr = np.frombuffer(image_bytes, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError("Failed to decode image data")

    return image


def decode_base64_image(payload: str) -> np.ndarray:
    """Decode base64 string to OpenCV image.

    Args:
        payload: Base64 encoded image string, optionally with data URL prefix.

    Returns:
        Decoded image as numpy array in BGR format.

    Raises:
        DecodeError: If the payload is not valid base64 or not an image.
    """
    if not isinstance(payload, str):
        raise DecodeError(f"Expected a base64 string, got {type(payload).__name__}")

    data = strip_data_uri(payload.strip())
    # MIME-style base64 wraps lines
    data = data.replace('\r', '').replace('\n', '')

    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Failed to decode base64 string: {str(e)}") from e

    return decode_image_bytes(image_bytes)
