"""Face matching orchestration: load both images, extract, compare."""

import asyncio
import logging

import httpx

from ..config import Settings
from ..models.types import MatchResult
from .cache import DescriptorCache
from .comparison import FaceComparator
from .face_detection import DescriptorExtractor, FaceModel
from .image_loader import EmbeddedImageLoader, ImageLoader, UrlImageLoader

logger = logging.getLogger(__name__)


class FaceMatchService:
    """Wires the cache, loaders, extractor and comparator together."""

    def __init__(
        self,
        model: FaceModel,
        cache: DescriptorCache,
        comparator: FaceComparator,
        http_client: httpx.AsyncClient,
    ):
        self.model = model
        self.cache = cache
        self.comparator = comparator
        self.http_client = http_client
        self.extractor = DescriptorExtractor(model, cache)
        self.url_loader = UrlImageLoader(http_client)
        self.embedded_loader = EmbeddedImageLoader()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        model: FaceModel,
        http_client: httpx.AsyncClient,
    ) -> "FaceMatchService":
        cache = DescriptorCache(max_entries=settings.cache_max_entries)
        logger.info(f"Descriptor cache policy: {cache.policy}, threshold: {settings.threshold}")
        return cls(model, cache, FaceComparator(settings.threshold), http_client)

    async def compare(self, selfie: str, id_photo: str, loader: ImageLoader) -> MatchResult:
        """Extract both descriptors concurrently and compare them.

        Args:
            selfie: Reference for the first image.
            id_photo: Reference for the second image.
            loader: Loader matching the kind of reference.

        Returns:
            MatchResult for the pair.

        Raises:
            FaceMatchingError: If either image cannot be loaded or processed.
        """
        face1, face2 = await asyncio.gather(
            self.extractor.extract(selfie, loader),
            self.extractor.extract(id_photo, loader),
        )
        return self.comparator.compare(face1, face2)

    async def compare_urls(self, selfie: str, id_photo: str) -> MatchResult:
        return await self.compare(selfie, id_photo, self.url_loader)

    async def compare_embedded(self, selfie: str, id_photo: str) -> MatchResult:
        return await self.compare(selfie, id_photo, self.embedded_loader)
