import numpy as np
import pytest

from supersampler import DecodeError, ImageRepository, SupersamplingContext, SupersamplingService
from supersampler.services.supersampling_service import round_half_up


class RecordingRepository(ImageRepository):
    """Skips real interpolation and records every requested size."""

    def __init__(self):
        self.resize_calls = []

    def resize(self, pixels, size):
        self.resize_calls.append(size)
        width, height = size
        return np.zeros((height, width) + pixels.shape[2:], dtype=np.uint8)


def _context(width, height, channels=3):
    return SupersamplingContext(
        pixels=np.zeros((height, width, channels), dtype=np.uint8),
        original_size=(width // 2, height // 2),
    )


# ─── policy, no real resampling ─────────────────────────────────────────
def test_create_upscales_with_truncated_size():
    repository = RecordingRepository()
    service = SupersamplingService(repository)

    context = service.create(np.zeros((3, 7, 3), dtype=np.uint8), scale_factor=2.75)

    assert repository.resize_calls == [(19, 8)]
    assert context.size == (19, 8)
    assert context.original_size == (7, 3)


@pytest.mark.parametrize(
    "size, max_size, expected",
    [
        ((200, 100), 50, (50, 25)),    # landscape
        ((100, 200), 50, (25, 50)),    # portrait
        ((80, 80), 30, (30, 30)),      # square takes the height branch
        ((180, 100), 50, (50, 27)),    # 27.77 truncated
        ((100, 180), 50, (27, 50)),
    ],
)
def test_fit_size_truncates(size, max_size, expected):
    assert SupersamplingService.fit_size(_context(*size), max_size) == expected


def test_resize_to_fit_delegates_to_resize():
    repository = RecordingRepository()
    service = SupersamplingService(repository)
    context = _context(180, 100)

    service.resize_to_fit(context, 50)

    assert repository.resize_calls == [(50, 27)]
    assert context.size == (50, 27)


@pytest.mark.parametrize(
    "size, target, expected",
    [
        ((200, 100), 60, (120, 60)),
        ((180, 100), 31, (56, 31)),    # 55.8 rounds up
        ((100, 180), 31, (31, 56)),
        ((200, 80), 5, (13, 5)),       # 12.5 rounds half up, not to even
        ((100, 100), 40, (40, 40)),
    ],
)
def test_rounded_size_rounds_half_up(size, target, expected):
    assert SupersamplingService.rounded_size(_context(*size), target) == expected


def test_fit_truncates_where_rounded_rounds_up():
    # ratio 1.8: 100 / 1.8 = 55.55 is truncated, 31 * 1.8 = 55.8 is rounded
    assert SupersamplingService.fit_size(_context(180, 100), 100) == (100, 55)
    assert SupersamplingService.rounded_size(_context(180, 100), 31) == (56, 31)


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(12.49) == 12
    assert round_half_up(0.5) == 1


def test_resize_to_size_accepts_tuple():
    repository = RecordingRepository()
    service = SupersamplingService(repository)
    context = _context(10, 10)

    service.resize_to_size(context, (4, 6))

    assert repository.resize_calls == [(4, 6)]
    assert context.size == (4, 6)


def test_aspect_ratio_follows_pixels():
    service = SupersamplingService(RecordingRepository())
    context = _context(200, 100)
    assert context.aspect_ratio == 2.0

    service.resize(context, 30, 60)
    assert context.aspect_ratio == 0.5


# ─── preconditions ─────────────────────────────────────────────────────
@pytest.mark.parametrize("scale_factor", [0, -1.0, float("nan"), float("inf")])
def test_create_rejects_bad_scale_factor(scale_factor):
    with pytest.raises(ValueError):
        SupersamplingService(RecordingRepository()).create(
            np.zeros((4, 4, 3), dtype=np.uint8), scale_factor=scale_factor
        )


def test_create_rejects_zero_area_result():
    with pytest.raises(ValueError):
        SupersamplingService(RecordingRepository()).create(
            np.zeros((1, 1, 3), dtype=np.uint8), scale_factor=0.5
        )


def test_create_rejects_empty_matrix():
    with pytest.raises(DecodeError):
        SupersamplingService(RecordingRepository()).create(np.zeros((0, 0, 3), dtype=np.uint8))


@pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (-3, 4)])
def test_resize_rejects_non_positive_size(width, height):
    with pytest.raises(ValueError):
        SupersamplingService(RecordingRepository()).resize(_context(10, 10), width, height)


# ─── against OpenCV ─────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "width, height, scale_factor, expected",
    [
        (100, 50, 2.0, (200, 100)),
        (101, 51, 1.5, (151, 76)),
        (33, 17, 0.5, (16, 8)),
    ],
)
def test_create_from_bytes(supersampling_service, encode, width, height, scale_factor, expected):
    context = supersampling_service.create(encode(width, height), scale_factor)
    assert context.size == expected
    assert context.original_size == (width, height)
    assert context.channels == 3


def test_create_from_garbage_bytes_raises(supersampling_service):
    with pytest.raises(DecodeError):
        supersampling_service.create(b"\x89PNG broken")


def test_example_landscape_fit(supersampling_service, encode):
    with supersampling_service.create(encode(100, 50)) as context:
        assert context.size == (200, 100)
        supersampling_service.resize_to_fit(context, 50)
        assert context.pixels.shape == (25, 50, 3)


def test_resize_to_current_size_is_identity(supersampling_service, encode):
    context = supersampling_service.create(encode(40, 30))
    before = context.pixels.copy()

    supersampling_service.resize(context, context.width, context.height)

    assert np.array_equal(context.pixels, before)


def test_context_released_after_with_block(supersampling_service, encode):
    with supersampling_service.create(encode(20, 10)) as context:
        assert context.pixels is not None
    assert context.pixels is None


def test_context_released_on_error(supersampling_service, encode):
    context = supersampling_service.create(encode(20, 10))
    with pytest.raises(ValueError):
        with context:
            supersampling_service.resize(context, 0, 0)
    assert context.pixels is None


# ─── circular mask ──────────────────────────────────────────────────────
@pytest.mark.parametrize("size", [(200, 100), (51, 77), (64, 64)])
def test_circle_mask_shape_center_and_corners(supersampling_service, size):
    width, height = size
    mask = supersampling_service.create_circle_mask(size)

    assert mask.shape == (height, width)
    assert mask.dtype == np.uint8
    assert mask[height // 2, width // 2] == 255
    for y, x in [(0, 0), (0, width - 1), (height - 1, 0), (height - 1, width - 1)]:
        assert mask[y, x] == 0


# Centre is (w // 2, h // 2), right of the true middle for even sizes, so on
# small masks the anti-aliased edge reaches a corner.
@pytest.mark.parametrize("n", range(2, 12))
def test_circle_mask_corners_on_small_masks(supersampling_service, n):
    mask = supersampling_service.create_circle_mask((n, n))
    corners = [mask[0, 0], mask[0, n - 1], mask[n - 1, 0], mask[n - 1, n - 1]]

    assert mask[n // 2, n // 2] == 255
    assert all(c == 0 for c in corners) == (n in (5, 7, 9, 11))


def test_circle_mask_two_by_two(supersampling_service):
    mask = supersampling_service.create_circle_mask((2, 2))
    assert mask.tolist() == [[68, 255], [237, 255]]


def test_circle_mask_edge_is_anti_aliased(supersampling_service):
    mask = supersampling_service.create_circle_mask((200, 100))
    partial = (mask > 0) & (mask < 255)
    assert partial.any()


def test_circle_mask_radius_uses_shorter_side(supersampling_service):
    mask = supersampling_service.create_circle_mask((200, 100))
    # radius 50 around x=100: columns far from the centre stay empty
    assert not mask[:, :40].any()
    assert not mask[:, 161:].any()
    assert mask[50, 60] == 255


def test_apply_circular_mask_adds_alpha(supersampling_service, encode):
    context = supersampling_service.create(encode(100, 50))
    colour_before = context.pixels.copy()

    supersampling_service.apply_circular_mask(context)

    assert context.channels == 4
    assert np.array_equal(context.pixels[..., :3], colour_before)
    assert context.pixels[50, 100, 3] == 255
    assert context.pixels[0, 0, 3] == 0
