from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import numpy as np


@dataclass
class SupersamplingContext:
    """
    Working state of one supersampling run: the current pixel matrix plus the
    size of the source it was made from.
    No OpenCV logic in this file.
    """
    pixels: np.ndarray | None  # Shape (H, W) or (H, W, C), dtype uint8, BGR(A) order.
    original_size: Tuple[int, int]  # (width, height) of the source before supersampling.

    # Derived from the pixels on every access, never cached.
    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def aspect_ratio(self) -> float:
        return float(self.width) / float(self.height)

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    def release(self) -> None:
        """Drop the matrix reference so the buffer can be reclaimed."""
        self.pixels = None

    def __enter__(self) -> SupersamplingContext:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
