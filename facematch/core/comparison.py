"""Descriptor comparison and the same-person threshold policy."""

import logging

import face_recognition
import numpy as np

from ..errors import FaceMatchingError
from ..models.types import FaceDetection, MatchResult

logger = logging.getLogger(__name__)


class FaceComparator:
    """Decide same-person by Euclidean descriptor distance.

    The threshold is tuned for the dlib descriptor space and comes from
    configuration; two faces match when their distance is strictly below it.
    """

    def __init__(self, threshold: float = 0.6):
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self.threshold = float(threshold)

    def distance(self, first: FaceDetection, second: FaceDetection) -> float:
        """Euclidean distance between two detected faces' descriptors.

        Raises:
            FaceMatchingError: If either side has no descriptor or the
                descriptors differ in length.
        """
        if not first.detected or not second.detected:
            raise FaceMatchingError("Distance requires two detected faces")
        if len(first.descriptor) != len(second.descriptor):
            raise FaceMatchingError(
                f"Descriptor length mismatch: {len(first.descriptor)} != {len(second.descriptor)}"
            )

        encoding1 = np.asarray(first.descriptor, dtype=np.float64)
        encoding2 = np.asarray(second.descriptor, dtype=np.float64)
        return float(face_recognition.face_distance([encoding1], encoding2)[0])

    def compare(self, first: FaceDetection, second: FaceDetection) -> MatchResult:
        """Compare two detections.

        Args:
            first: Detection for the selfie.
            second: Detection for the ID photo.

        Returns:
            ``{"match": None, "samePerson": False}`` when either side has no
            face, otherwise the threshold decision.
        """
        if not first.detected or not second.detected:
            # If either image doesn't contain a face there is nothing to compare
            return {'match': None, 'samePerson': False}

        face_distance = self.distance(first, second)
        same_person = face_distance < self.threshold
        logger.info(f"Face distance: {face_distance:.3f}, threshold: {self.threshold}, same person: {same_person}")

        return {
            'match': 'Match' if same_person else 'No match',
            'samePerson': same_person
        }
