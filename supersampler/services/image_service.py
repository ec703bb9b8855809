from __future__ import annotations
from typing import Optional
import logging
import os
import numpy as np
from PIL import Image as PILImage
from dotenv import load_dotenv
from ..repositories.image_repository import (
    LOSSLESS_FORMATS,
    Buffer,
    DecodeError,
    DecodeMode,
    ImageRepository,
)
from .supersampling_service import SupersamplingService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageService:
    """
    Byte buffer / bitmap helpers built on supersampling.
    Undecodable input is an expected case here: helpers that take raw bytes
    return None instead of raising.
    """

    def __init__(
        self,
        scale_factor: float | None = None,
        roundtrip_ext: str | None = None,
        image_repository: ImageRepository | None = None,
    ):
        if scale_factor is None:
            scale_factor = float(os.getenv("SUPERSAMPLING_SCALE_FACTOR", "2.0"))
        if roundtrip_ext is None:
            roundtrip_ext = os.getenv("ROUNDTRIP_IMAGE_EXT", ".png")
        if roundtrip_ext.lower() not in LOSSLESS_FORMATS:
            raise ValueError(
                f"ROUNDTRIP_IMAGE_EXT must be one of {sorted(LOSSLESS_FORMATS)}, got {roundtrip_ext}"
            )

        self.scale_factor = scale_factor
        self.roundtrip_ext = roundtrip_ext
        self.image_repository = image_repository or ImageRepository()
        self.supersampling_service = SupersamplingService(self.image_repository)

    # ─── bytes -> bitmap ─────────────────────────────────────────────────
    def to_image(self, data: Buffer) -> Optional[PILImage.Image]:
        """Decode only, no resampling. None if the bytes do not decode."""
        try:
            pixels = self.image_repository.decode(data, DecodeMode.COLOR)
        except DecodeError as err:
            logger.warning("Skipping undecodable image: %s", err)
            return None
        return self.image_repository.to_bitmap(pixels)

    def image_from_bytes(self, data: Buffer, width: int, height: int) -> Optional[PILImage.Image]:
        """Supersample, then resize to exactly width x height."""
        try:
            context = self.supersampling_service.create(data, self.scale_factor, DecodeMode.COLOR)
        except DecodeError as err:
            logger.warning("Skipping undecodable image: %s", err)
            return None

        with context:
            self.supersampling_service.resize(context, width, height)
            return self.supersampling_service.to_bitmap(context)

    def image_from_bytes_fit(self, data: Buffer, size: int) -> Optional[PILImage.Image]:
        """
        Supersample, then fit the longer side to size.

        Only undecodable bytes give None. A source so wide (or tall) that the
        truncated short side comes out 0, e.g. 400x3 fitted to 50, still
        raises ValueError from the resize.
        """
        try:
            context = self.supersampling_service.create(data, self.scale_factor, DecodeMode.COLOR)
        except DecodeError as err:
            logger.warning("Skipping undecodable image: %s", err)
            return None

        with context:
            self.supersampling_service.resize_to_fit(context, size)
            return self.supersampling_service.to_bitmap(context)

    # ─── bitmap <-> matrix ───────────────────────────────────────────────
    def image_to_matrix(self, image: PILImage.Image) -> np.ndarray:
        """
        Bridge a Pillow image into an OpenCV matrix through an in-memory
        lossless encode/decode. Alpha is kept; palette and other modes are
        normalised to RGB/RGBA first.
        """
        if image.mode not in ("L", "RGB", "RGBA"):
            has_alpha = "A" in image.getbands() or "transparency" in image.info
            image = image.convert("RGBA" if has_alpha else "RGB")
        return self.image_repository.from_bitmap(image, self.roundtrip_ext)

    def matrix_to_image(self, pixels: np.ndarray) -> PILImage.Image:
        return self.image_repository.to_bitmap(pixels)

    def image_to_bytes(self, image: PILImage.Image, ext: str = ".png") -> bytes:
        return self.image_repository.bitmap_to_bytes(image, ext)

    # ─── bitmap -> bitmap ────────────────────────────────────────────────
    def resize_image(self, image: PILImage.Image, width: int, height: int) -> PILImage.Image:
        with self.supersampling_service.create(self.image_to_matrix(image), self.scale_factor) as context:
            self.supersampling_service.resize(context, width, height)
            return self.supersampling_service.to_bitmap(context)

    def resize_image_fit(self, image: PILImage.Image, size: int) -> PILImage.Image:
        with self.supersampling_service.create(self.image_to_matrix(image), self.scale_factor) as context:
            self.supersampling_service.resize_to_fit(context, size)
            return self.supersampling_service.to_bitmap(context)

    # ─── rounded (avatar) images ─────────────────────────────────────────
    def round_image(self, image: PILImage.Image, size: int) -> PILImage.Image:
        """
        Circular crop with transparent corners.

        The mask is applied to the supersampled matrix, then the result is
        downscaled so the shorter side equals size (other side rounded half-up).

        Args:
            image (PILImage.Image): Source bitmap.
            size (int): Target length of the shorter side.

        Returns:
            PILImage.Image: RGBA bitmap.
        """
        with self.supersampling_service.create(self.image_to_matrix(image), self.scale_factor) as context:
            self.supersampling_service.apply_circular_mask(context)
            width, height = self.supersampling_service.rounded_size(context, size)
            self.supersampling_service.resize(context, width, height)
            return self.supersampling_service.to_bitmap(context)

    def rounded_image(self, data: Buffer, size: int) -> Optional[PILImage.Image]:
        """Decode bytes and round them. None if the bytes do not decode."""
        image = self.to_image(data)
        if image is None:
            return None
        return self.round_image(image, size)
