from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

from .file_ref import FileRef
from .image import Image


@dataclass
class DecodedImage:
    """A FileRef together with the bitmap decoded from it."""
    ref: FileRef
    image: Image


@dataclass
class WatermarkedImage:
    """
    Output of the compositor. ``watermarked`` is a new bitmap; the decoded
    one is left untouched.
    """
    decoded: DecodedImage
    watermarked: Image

    @property
    def ref(self) -> FileRef:
        return self.decoded.ref

    @property
    def output_path(self) -> Path:
        return self.decoded.ref.path
