import cv2
import numpy as np
import pytest

from supersampler import ImageRepository, ImageService, SupersamplingService


def _random_pixels(width: int, height: int, channels: int = 3) -> np.ndarray:
    rng = np.random.default_rng(width * 1000 + height)
    return rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)


@pytest.fixture
def make_pixels():
    """Factory: random BGR(A) matrix of the given size."""
    return _random_pixels


@pytest.fixture
def encode():
    """Factory: encoded image bytes of the given size."""
    def _encode(width: int, height: int, ext: str = ".jpg") -> bytes:
        ok, buf = cv2.imencode(ext, _random_pixels(width, height))
        assert ok
        return buf.tobytes()
    return _encode


@pytest.fixture
def image_repository():
    return ImageRepository()


@pytest.fixture
def supersampling_service(image_repository):
    return SupersamplingService(image_repository)


@pytest.fixture
def image_service(image_repository):
    return ImageService(scale_factor=2.0, roundtrip_ext=".png", image_repository=image_repository)
