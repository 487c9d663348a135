"""Data models and type definitions"""
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import numpy as np
from typing_extensions import TypedDict

# Decoded raster image, (height, width, 3) uint8 in BGR order.
DecodedImage = np.ndarray


@dataclass(frozen=True)
class FaceDetection:
    """Outcome of descriptor extraction for one image.

    A ``None`` descriptor means no face was found in the image.
    """

    descriptor: Optional[Tuple[float, ...]] = None

    @property
    def detected(self) -> bool:
        return self.descriptor is not None

    @classmethod
    def from_vector(cls, vector) -> "FaceDetection":
        return cls(descriptor=tuple(float(v) for v in vector))


NOT_DETECTED = FaceDetection()


class MatchResult(TypedDict):
    match: Optional[Literal["Match", "No match"]]
    samePerson: bool


class FaceMatchRequest(TypedDict):
    selfie: str
    id_photo: str


class ErrorResponse(TypedDict):
    error: str


class HealthStatus(TypedDict):
    status: Literal["loading", "ok", "error"]
    modelsLoaded: bool
    cacheEntries: int
