"""Supersampled resizing and rounded (avatar style) images on top of OpenCV."""
from .models.supersampling import SupersamplingContext
from .repositories.image_repository import DecodeError, DecodeMode, ImageRepository
from .services.supersampling_service import SupersamplingService
from .services.image_service import ImageService

__all__ = [
    "SupersamplingContext",
    "DecodeError",
    "DecodeMode",
    "ImageRepository",
    "SupersamplingService",
    "ImageService",
]
