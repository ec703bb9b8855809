from __future__ import annotations
from enum import IntEnum
from io import BytesIO
from pathlib import Path
from typing import List, Sequence, Tuple, Union
import logging
import numpy as np
import cv2
from PIL import Image as PILImage
from ..models.supersampling import SupersamplingContext

logger = logging.getLogger(__name__)

Buffer = Union[bytes, bytearray, memoryview]

# Pillow format names for the lossless in-memory round-trip.
LOSSLESS_FORMATS = {
    ".png": "PNG",
    ".bmp": "BMP",
    ".tiff": "TIFF",
    ".tif": "TIFF",
}

# Pillow formats that cannot store RGBA.
NO_ALPHA_FORMATS = {"JPEG", "MPEG", "PCX", "PPM", "EPS", "XBM", "MSP"}


class DecodeError(ValueError):
    """The buffer did not decode to a non-empty pixel matrix."""


class DecodeMode(IntEnum):
    COLOR = cv2.IMREAD_COLOR
    UNCHANGED = cv2.IMREAD_UNCHANGED
    GRAYSCALE = cv2.IMREAD_GRAYSCALE


class ImageRepository:
    """
    Thin access layer over OpenCV and Pillow.
    Every decode/encode/resize/channel call of the package goes through here,
    so the services only hold sizing and masking policy.
    """

    @staticmethod
    def create_context(pixels: np.ndarray, original_size: Tuple[int, int]) -> SupersamplingContext:
        return SupersamplingContext(pixels=pixels, original_size=original_size)

    @staticmethod
    def retrieve_dimensions(pixels: np.ndarray) -> Tuple[int, int]:
        """(width, height) of a matrix."""
        height, width = pixels.shape[:2]
        return int(width), int(height)

    @staticmethod
    def set_pixels(context: SupersamplingContext, new_pixels: np.ndarray) -> None:
        context.pixels = new_pixels

    # ─── codec ───────────────────────────────────────────────────────────
    @staticmethod
    def decode(data: Buffer, mode: DecodeMode = DecodeMode.COLOR) -> np.ndarray:
        """
        Decode an encoded image buffer (PNG, JPEG, ...) into a matrix.

        Raises:
            DecodeError: empty buffer, unsupported/corrupt data or a zero-area result.
        """
        if data is None or len(data) == 0:
            raise DecodeError("Image buffer is empty")

        buf = np.frombuffer(data, dtype=np.uint8)
        try:
            arr = cv2.imdecode(buf, int(mode))
        except cv2.error as err:
            raise DecodeError(f"cv2.imdecode failed: {err}") from err

        if arr is None or arr.size == 0:
            raise DecodeError(f"Image buffer could not be decoded ({len(data)} bytes)")
        return arr

    @staticmethod
    def encode(pixels: np.ndarray, ext: str = ".png") -> bytes:
        ok, buf = cv2.imencode(ext, pixels)
        if not ok:
            raise ValueError(f"cv2.imencode could not write {ext}")
        return buf.tobytes()

    # ─── geometry / channels ─────────────────────────────────────────────
    @staticmethod
    def resize(pixels: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
        """Area-interpolated resize to size = (width, height)."""
        return cv2.resize(pixels, size, interpolation=cv2.INTER_AREA)

    @staticmethod
    def to_bgra(pixels: np.ndarray) -> np.ndarray:
        if pixels.ndim == 2:
            return cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGRA)
        channels = pixels.shape[2]
        if channels == 1:
            return cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGRA)
        if channels == 3:
            return cv2.cvtColor(pixels, cv2.COLOR_BGR2BGRA)
        if channels == 4:
            return pixels.copy()
        raise ValueError(f"Unsupported channel count: {channels}")

    @staticmethod
    def split(pixels: np.ndarray) -> List[np.ndarray]:
        return list(cv2.split(pixels))

    @staticmethod
    def merge(channels: Sequence[np.ndarray]) -> np.ndarray:
        return cv2.merge(list(channels))

    @staticmethod
    def new_mask(size: Tuple[int, int]) -> np.ndarray:
        """Black single-channel matrix of size = (width, height)."""
        width, height = size
        return np.zeros((height, width), dtype=np.uint8)

    @staticmethod
    def draw_filled_circle(
        mask: np.ndarray,
        center: Tuple[int, int],
        radius: int,
        value: int = 255,
    ) -> np.ndarray:
        """Filled, anti-aliased circle drawn in place."""
        cv2.circle(mask, center, radius, value, thickness=-1, lineType=cv2.LINE_AA)
        return mask

    # ─── matrix <-> bitmap ───────────────────────────────────────────────
    @staticmethod
    def to_bitmap(pixels: np.ndarray) -> PILImage.Image:
        """
        Convert a BGR/BGRA/gray matrix into a Pillow image (RGB/RGBA/L).
        Ensures the NumPy array is C-contiguous.
        """
        if pixels.ndim == 2:
            rgb = pixels
        elif pixels.shape[2] == 4:
            rgb = cv2.cvtColor(pixels, cv2.COLOR_BGRA2RGBA)
        elif pixels.shape[2] == 3:
            rgb = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)
        elif pixels.shape[2] == 1:
            rgb = pixels[:, :, 0]
        else:
            raise ValueError(f"Unsupported channel count: {pixels.shape[2]}")

        if not rgb.flags['C_CONTIGUOUS']:
            rgb = np.ascontiguousarray(rgb)
        return PILImage.fromarray(rgb)

    def from_bitmap(self, bitmap: PILImage.Image, ext: str = ".png") -> np.ndarray:
        """
        Pillow image -> matrix by saving to an in-memory lossless buffer and
        decoding it back unchanged (keeps the alpha channel).
        """
        fmt = LOSSLESS_FORMATS.get(ext.lower())
        if fmt is None:
            raise ValueError(f"Not a lossless round-trip format: {ext}")

        with BytesIO() as ms:
            bitmap.save(ms, format=fmt)
            data = ms.getvalue()
        return self.decode(data, DecodeMode.UNCHANGED)

    @staticmethod
    def bitmap_to_bytes(bitmap: PILImage.Image, ext: str = ".png") -> bytes:
        fmt = PILImage.registered_extensions().get(ext.lower())
        if fmt is None:
            raise ValueError(f"Unknown image extension: {ext}")
        with BytesIO() as ms:
            bitmap.save(ms, format=fmt)
            return ms.getvalue()

    # ─── file I/O ────────────────────────────────────────────────────────
    @staticmethod
    def load(path: Union[str, Path]) -> bytes:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return path.read_bytes()

    @staticmethod
    def supports_alpha(path: Union[str, Path]) -> bool:
        """False for file types Pillow writes without an alpha channel (JPEG, ...)."""
        fmt = PILImage.registered_extensions().get(Path(path).suffix.lower())
        return fmt is not None and fmt not in NO_ALPHA_FORMATS

    @staticmethod
    def save(bitmap: PILImage.Image, path: Union[str, Path]) -> None:
        path = Path(path)
        logger.debug("Saving %s image %sx%s to %s", bitmap.mode, bitmap.width, bitmap.height, path)
        bitmap.save(path)
