from pathlib import Path
from typing import Union
import errno

import cv2
import numpy as np
from PIL import Image as PILImage

from ..errors import AssetError, DecodeError
from ..models.image import Image


class ImageRepository:
    """
    Handles file I/O for Image entities. OpenCV reads, Pillow writes.
    """

    @staticmethod
    def load(path: Union[str, Path]) -> Image:
        """Decode a colour image into RGB pixels. Raises DecodeError."""
        path = Path(path)
        try:
            arr_bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
        except cv2.error as err:
            raise DecodeError(path) from err

        if arr_bgr is None or arr_bgr.size == 0:
            raise DecodeError(path)

        return Image(pixels=arr_bgr[:, :, ::-1].copy(), path=path)

    @staticmethod
    def load_asset(path: Union[str, Path]) -> Image:
        """
        Decode an overlay asset into RGBA pixels, keeping its alpha channel
        (opaque alpha is added when the file has none). Raises AssetError.
        """
        path = Path(path)
        if not path.is_file():
            raise AssetError(path, "missing")

        try:
            arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        except cv2.error as err:
            raise AssetError(path, "not a valid image") from err
        if arr is None or arr.size == 0:
            raise AssetError(path, "not a valid image")

        # 16-bit PNGs
        if arr.dtype == np.uint16:
            arr = (arr // 257).astype(np.uint8)
        elif arr.dtype != np.uint8:
            raise AssetError(path, f"of unsupported pixel type {arr.dtype}")

        if arr.ndim == 2:
            rgba = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        elif arr.shape[2] == 3:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        elif arr.shape[2] == 4:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        else:
            raise AssetError(path, f"of unsupported channel count {arr.shape[2]}")

        return Image(pixels=rgba, path=path)

    @staticmethod
    def save(image: Image, quality: int = 90) -> Path:
        """
        Write RGB pixels as JPEG. The parent directory must already exist.
        """
        if image.path is None:
            raise ValueError("Cannot save an image without a path")
        path = Path(image.path)
        if not path.parent.is_dir():
            raise FileNotFoundError(
                errno.ENOENT, "Output directory does not exist", str(path.parent)
            )

        PILImage.fromarray(image.pixels).save(path, format="JPEG", quality=quality)
        return path

    @staticmethod
    def remove(path: Union[str, Path]) -> None:
        Path(path).unlink(missing_ok=True)
