from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass
class Image:
    """
    Simple data object: pixels (+ optional path for bookkeeping).
    No OpenCV logic outside the repositories.
    """
    pixels: np.ndarray # Shape (H, W, 3) RGB, or (H, W, 4) RGBA for the watermark asset. dtype uint8.
    path: Path | None = None # Where the pixels came from / are going.

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])
