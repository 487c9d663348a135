"""Image loaders turning an image reference into a decoded image.

Two implementations share one interface: ``UrlImageLoader`` fetches the
reference over HTTP(S) and decodes the body, ``EmbeddedImageLoader`` decodes a
data URI or bare base64 payload directly. The descriptor extractor only sees
``ImageLoader`` and never the origin of the image.
"""

import logging
from typing import Protocol

import httpx
from fastapi.concurrency import run_in_threadpool

from ..config import Settings
from ..errors import FetchError
from ..models.types import DecodedImage
from ..utils.image import decode_base64_image, decode_image_bytes

logger = logging.getLogger(__name__)


class ImageLoader(Protocol):
    """Capability producing a decoded image from a reference string."""

    # Which variant of reference this loader accepts; part of the cache key
    kind: str

    async def load(self, ref: str) -> DecodedImage:
        ...


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared client used to fetch remote images.

    Certificate verification follows ``settings.allow_insecure_tls``.
    """
    if settings.allow_insecure_tls:
        logger.warning("TLS certificate verification is disabled for image fetching")
    return httpx.AsyncClient(
        verify=not settings.allow_insecure_tls,
        timeout=settings.fetch_timeout,
        follow_redirects=True,
    )


class UrlImageLoader:
    """Fetch-then-decode loader for remote images."""

    kind = "url"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch(self, url: str) -> bytes:
        """Retrieve the raw bytes behind ``url``.

        Raises:
            FetchError: If the URL is invalid, the request fails or the
                remote does not answer with status 200.
        """
        if not isinstance(url, str) or not url.strip():
            raise FetchError("Image URL must be a non-empty string")

        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Failed to fetch {url}: {e!r}")
            raise FetchError(f"Failed to fetch image: {str(e)}") from e

        if response.status_code != 200:
            logger.warning(f"Failed to fetch {url}: status {response.status_code}")
            raise FetchError(f"Failed to fetch image: status {response.status_code}")

        return response.content

    async def load(self, ref: str) -> DecodedImage:
        image_bytes = await self.fetch(ref)
        return await run_in_threadpool(decode_image_bytes, image_bytes)


class EmbeddedImageLoader:
    """Decode-only loader for inline base64 payloads and data URIs."""

    kind = "embedded"

    async def load(self, ref: str) -> DecodedImage:
        return await run_in_threadpool(decode_base64_image, ref)
