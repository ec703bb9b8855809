from __future__ import annotations
from typing import Tuple, Union
import logging
import math
import numpy as np
from PIL import Image as PILImage
from ..models.supersampling import SupersamplingContext
from ..repositories.image_repository import Buffer, DecodeError, DecodeMode, ImageRepository

logger = logging.getLogger(__name__)

DEFAULT_SCALE_FACTOR = 2.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SupersamplingService:
    """
    Sizing and masking policy for supersampled images.
    All pixel work is delegated to the ImageRepository.
    """

    def __init__(self, image_repository: ImageRepository | None = None):
        self.image_repository = image_repository or ImageRepository()

    def create(
        self,
        source: Union[Buffer, np.ndarray],
        scale_factor: float = DEFAULT_SCALE_FACTOR,
        mode: DecodeMode = DecodeMode.COLOR,
    ) -> SupersamplingContext:
        """
        Decode (if needed) and upscale the source by scale_factor with area
        interpolation.

        Args:
            source: Encoded image bytes, or an already decoded matrix.
            scale_factor: Upscale factor applied before any final resize.
            mode: Decode mode used when source is a byte buffer.

        Returns:
            SupersamplingContext holding the supersampled matrix.

        Raises:
            DecodeError: source bytes do not decode, or the matrix is empty.
            ValueError: scale_factor is not a positive finite number, or it
                shrinks the source to zero pixels.
        """
        if not math.isfinite(scale_factor) or scale_factor <= 0:
            raise ValueError(f"scale_factor must be > 0, got {scale_factor}")

        if isinstance(source, np.ndarray):
            src = source
            if src.size == 0:
                raise DecodeError("Source matrix is empty")
        else:
            src = self.image_repository.decode(source, mode)

        org_width, org_height = self.image_repository.retrieve_dimensions(src)
        width = int(org_width * scale_factor)
        height = int(org_height * scale_factor)
        if width <= 0 or height <= 0:
            raise ValueError(
                f"scale_factor {scale_factor} turns {org_width}x{org_height} into {width}x{height}"
            )

        logger.debug("Supersampling %sx%s -> %sx%s", org_width, org_height, width, height)
        pixels = self.image_repository.resize(src, (width, height))
        return self.image_repository.create_context(pixels, (org_width, org_height))

    # ─── explicit resize ─────────────────────────────────────────────────
    def resize(self, context: SupersamplingContext, width: int, height: int) -> None:
        """Resize the context matrix in place to exactly width x height."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid target size {width}x{height}")
        logger.debug("Resizing %sx%s -> %sx%s", context.width, context.height, width, height)
        new_pixels = self.image_repository.resize(context.pixels, (int(width), int(height)))
        self.image_repository.set_pixels(context, new_pixels)

    def resize_to_size(self, context: SupersamplingContext, size: Tuple[int, int]) -> None:
        width, height = size
        self.resize(context, width, height)

    # ─── fit rules ───────────────────────────────────────────────────────
    @staticmethod
    def fit_size(context: SupersamplingContext, max_size: int) -> Tuple[int, int]:
        """
        Bound the longer side to max_size, keep the aspect ratio and
        truncate the other side.
        Equal sides take the height branch.
        """
        if context.width > context.height:
            new_width = max_size
            new_height = int(max_size / context.aspect_ratio)
        else:
            new_height = max_size
            new_width = int(max_size * context.aspect_ratio)
        return new_width, new_height

    def resize_to_fit(self, context: SupersamplingContext, max_size: int) -> None:
        new_width, new_height = self.fit_size(context, max_size)
        self.resize(context, new_width, new_height)

    @staticmethod
    def rounded_size(context: SupersamplingContext, size: int) -> Tuple[int, int]:
        """
        Pin the shorter side to size and round the other one half-up
        (fit_size truncates instead).
        """
        aspect_ratio = context.aspect_ratio
        if aspect_ratio >= 1.0:
            height = size
            width = round_half_up(size * aspect_ratio)
        else:
            width = size
            height = round_half_up(size / aspect_ratio)
        return width, height

    # ─── circular mask ───────────────────────────────────────────────────
    def create_circle_mask(self, size: Tuple[int, int]) -> np.ndarray:
        """
        Single-channel mask of size = (width, height): 255 inside the
        centred circle of radius min(cx, cy), 0 elsewhere, anti-aliased edge.
        """
        width, height = size
        center_x = width // 2
        center_y = height // 2
        radius = min(center_x, center_y)
        mask = self.image_repository.new_mask(size)
        return self.image_repository.draw_filled_circle(mask, (center_x, center_y), radius)

    def apply_circular_mask(self, context: SupersamplingContext) -> SupersamplingContext:
        """Convert the context matrix to BGRA and take its alpha from the circle mask."""
        mask = self.create_circle_mask(context.size)
        bgra = self.image_repository.to_bgra(context.pixels)
        channels = self.image_repository.split(bgra)
        channels[3] = mask
        self.image_repository.set_pixels(context, self.image_repository.merge(channels))
        return context

    def to_bitmap(self, context: SupersamplingContext) -> PILImage.Image:
        return self.image_repository.to_bitmap(context.pixels)
