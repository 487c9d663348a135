"""Core face descriptor extraction and matching functionality"""
from .cache import DescriptorCache
from .comparison import FaceComparator
from .face_detection import DescriptorExtractor, FaceModel
from .image_loader import EmbeddedImageLoader, ImageLoader, UrlImageLoader, build_http_client
from .matcher import FaceMatchService

__all__ = [
    'DescriptorCache',
    'FaceComparator',
    'DescriptorExtractor',
    'FaceModel',
    'EmbeddedImageLoader',
    'ImageLoader',
    'UrlImageLoader',
    'build_http_client',
    'FaceMatchService'
]
