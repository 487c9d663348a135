"""Face descriptor extraction module.

This module wraps the dlib face recognition models (frontal face detector,
68-point landmark predictor and ResNet descriptor network) behind
``FaceModel``, and memoizes their output per image reference in
``DescriptorExtractor``.
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

import cv2
import dlib
import face_recognition_models
import numpy as np
from fastapi.concurrency import run_in_threadpool

from ..errors import FaceMatchingError, ServiceNotReadyError
from ..models.types import DecodedImage, FaceDetection, NOT_DETECTED
from .cache import DescriptorCache
from .image_loader import ImageLoader

logger = logging.getLogger(__name__)

# (loader kind, raw reference)
CacheKey = Tuple[str, str]


def describe_reference(ref: str) -> str:
    """Short form of a reference for log lines (payloads can be megabytes)."""
    if isinstance(ref, str) and ref.startswith(("http://", "https://")):
        return ref
    return f"<payload {len(ref) if isinstance(ref, str) else 0} chars>"


class FaceModel:
    """Single-face detection, landmarking and descriptor extraction."""

    DETECTOR_FILE = "mmod_human_face_detector.dat"
    LANDMARKS_FILE = "shape_predictor_68_face_landmarks.dat"
    DESCRIPTOR_FILE = "dlib_face_recognition_resnet_model_v1.dat"

    def __init__(
        self,
        models_dir: str = "models",
        detector: str = "hog",
        upsample_times: int = 1,
        num_jitters: int = 1,
    ):
        """Configure the model; artifacts are read by ``load()``.

        Args:
            models_dir: Directory searched first for the model artifacts.
            detector: "hog" for dlib's built-in HOG detector, "cnn" for the
                MMOD CNN detector.
            upsample_times: Image upsampling passes before detection.
            num_jitters: Re-sampling passes when computing the descriptor.
        """
        if detector not in ("hog", "cnn"):
            raise ValueError(f"Unknown face detector: {detector}")
        self.models_dir = Path(models_dir)
        self.detector_type = detector
        self.upsample_times = upsample_times
        self.num_jitters = num_jitters

        self._detector = None
        self._landmarks = None
        self._encoder = None
        # dlib models are not safe to share across concurrent calls
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._encoder is not None

    def artifact_path(self, filename: str) -> str:
        """Resolve an artifact, preferring ``models_dir`` over the bundled copy.

        Args:
            filename: Artifact file name.

        Returns:
            Path to the artifact as a string (dlib wants str).
        """
        local = self.models_dir / filename
        if local.is_file():
            return str(local)

        bundled = {
            self.DETECTOR_FILE: face_recognition_models.cnn_face_detector_model_location,
            self.LANDMARKS_FILE: face_recognition_models.pose_predictor_model_location,
            self.DESCRIPTOR_FILE: face_recognition_models.face_recognition_model_location,
        }
        return bundled[filename]()

    def load(self) -> None:
        """Load detector, landmarker and descriptor network from disk."""
        if self.is_loaded:
            return

        logger.info(f"Loading face models (detector={self.detector_type}, models_dir={self.models_dir})")
        if self.detector_type == "cnn":
            detector = dlib.cnn_face_detection_model_v1(self.artifact_path(self.DETECTOR_FILE))
        else:
            detector = dlib.get_frontal_face_detector()
        landmarks = dlib.shape_predictor(self.artifact_path(self.LANDMARKS_FILE))
        encoder = dlib.face_recognition_model_v1(self.artifact_path(self.DESCRIPTOR_FILE))

        with self._lock:
            self._detector = detector
            self._landmarks = landmarks
            self._encoder = encoder
        logger.info("Models loaded successfully")

    def _best_face(self, rgb_image: np.ndarray) -> Optional["dlib.rectangle"]:
        if self.detector_type == "cnn":
            detections = self._detector(rgb_image, self.upsample_times)
            if len(detections) == 0:
                return None
            return max(detections, key=lambda d: d.confidence).rect

        rects, scores, _ = self._detector.run(rgb_image, self.upsample_times, 0.0)
        if len(rects) == 0:
            return None
        best = max(range(len(rects)), key=lambda i: scores[i])
        return rects[best]

    def detect_single_face(self, image: DecodedImage) -> FaceDetection:
        """Extract the descriptor of the most confident face in an image.

        Args:
            image: Decoded image in BGR format.

        Returns:
            FaceDetection with a 128-d descriptor, or NOT_DETECTED.

        Raises:
            ServiceNotReadyError: If ``load()`` has not completed.
            FaceMatchingError: If the model fails on the image.
        """
        if not self.is_loaded:
            raise ServiceNotReadyError("Face models are not loaded")

        # Convert BGR to RGB (dlib uses RGB)
        rgb_image = np.ascontiguousarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))

        try:
            with self._lock:
                rect = self._best_face(rgb_image)
                if rect is None:
                    return NOT_DETECTED
                shape = self._landmarks(rgb_image, rect)
                descriptor = self._encoder.compute_face_descriptor(rgb_image, shape, self.num_jitters)
        except RuntimeError as e:
            raise FaceMatchingError(f"Face model failed: {str(e)}") from e

        return FaceDetection.from_vector(np.asarray(descriptor))


class DescriptorExtractor:
    """Memoized, origin-agnostic descriptor extraction.

    Entries are keyed by ``(loader.kind, ref)`` so a URL string and the same
    string sent as an embedded payload never share a result. Concurrent calls
    for the same uncached key share one in-flight extraction. Only final
    FaceDetection results are cached; load and model errors reach every
    waiter and leave the cache untouched.
    """

    def __init__(self, model: FaceModel, cache: DescriptorCache):
        self.model = model
        self.cache = cache
        self._inflight: Dict[CacheKey, "asyncio.Task[FaceDetection]"] = {}

    async def extract(self, ref: str, loader: ImageLoader) -> FaceDetection:
        """Return the FaceDetection for ``ref``, computing it at most once.

        Args:
            ref: Raw image reference (URL or embedded payload).
            loader: Loader able to turn ``ref`` into a decoded image; its
                ``kind`` is part of the cache key.

        Returns:
            Cached or freshly computed FaceDetection.
        """
        key = (loader.kind, ref)
        cached = self.cache.lookup(key)
        if cached is not None:
            logger.debug(f"Cache hit for {loader.kind} {describe_reference(ref)}")
            return cached

        task = self._inflight.get(key)
        if task is None:
            logger.debug(f"Cache miss for {loader.kind} {describe_reference(ref)}")
            task = asyncio.ensure_future(self._extract_uncached(key, loader))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))
        else:
            logger.debug(f"Joining in-flight extraction for {loader.kind} {describe_reference(ref)}")

        # A cancelled waiter must not cancel the extraction other callers share
        return await asyncio.shield(task)

    async def _extract_uncached(self, key: CacheKey, loader: ImageLoader) -> FaceDetection:
        ref = key[1]
        try:
            image = await loader.load(ref)
            logger.info(f"Extracting descriptor for {describe_reference(ref)} ({image.shape[1]}x{image.shape[0]})")
            detection = await run_in_threadpool(self.model.detect_single_face, image)

            if not detection.detected:
                logger.info(f"No face detected in {describe_reference(ref)}")
            self.cache.store(key, detection)
            return detection
        finally:
            # Free the slot before waiters resume so a retry starts fresh
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    def _release(self, key: CacheKey, task: "asyncio.Task[FaceDetection]") -> None:
        # Only reached with the slot still held if the task never started
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Waiters re-raise it; marking it retrieved avoids a spurious warning
            task.exception()

    @property
    def in_flight(self) -> int:
        return len(self._inflight)
