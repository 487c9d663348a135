"""In-memory descriptor cache keyed by image reference."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Hashable, Optional

from ..models.types import FaceDetection

logger = logging.getLogger(__name__)


class DescriptorCache:
    """Process-lifetime cache from image reference key to FaceDetection.

    With ``max_entries=None`` entries are never evicted. With a positive cap the
    cache behaves as an LRU: lookups refresh recency and storing past the cap
    drops the least recently used entry.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, FaceDetection]" = OrderedDict()

    @property
    def policy(self) -> str:
        return "none" if self.max_entries is None else "lru"

    def lookup(self, key: Hashable) -> Optional[FaceDetection]:
        detection = self._entries.get(key)
        if detection is None:
            return None
        if self.max_entries is not None:
            self._entries.move_to_end(key)
        return detection

    def store(self, key: Hashable, detection: FaceDetection) -> None:
        if not isinstance(detection, FaceDetection):
            raise TypeError(f"Cache only stores FaceDetection values, got {type(detection).__name__}")

        self._entries[key] = detection
        if self.max_entries is None:
            return

        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            logger.debug(f"Evicted least recently used entry, {len(self._entries)} remain")

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
