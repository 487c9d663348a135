"""Data models and type definitions"""
from .types import (
    DecodedImage,
    FaceDetection,
    NOT_DETECTED,
    MatchResult,
    FaceMatchRequest,
    ErrorResponse,
    HealthStatus
)

__all__ = [
    'DecodedImage',
    'FaceDetection',
    'NOT_DETECTED',
    'MatchResult',
    'FaceMatchRequest',
    'ErrorResponse',
    'HealthStatus'
]
