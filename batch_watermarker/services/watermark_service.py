"""
Watermark compositing.

The logo is sized to the target's width minus a margin on each side,
centered, "screen" blended onto the target and the whole result is then
rescaled to the configured output width.
"""
from __future__ import annotations
from typing import Optional, Tuple
import logging

import cv2
import numpy as np

from ..config import PipelineConfig
from ..models.image import Image
from ..models.processed_image import DecodedImage, WatermarkedImage
from .image_service import ImageService

logger = logging.getLogger(__name__)


def watermark_size(
    target_width: int,
    logo_width: int,
    logo_height: int,
    margin_percent: float,
) -> Tuple[int, int]:
    """
    Width is ``W - W * 2 * margin%``; height keeps the logo's aspect ratio.
    """
    width = max(1, int(round(target_width - target_width * 2 * (margin_percent / 100))))
    height = max(1, int(round(width * logo_height / logo_width)))
    return width, height


def placement(
    target_width: int,
    target_height: int,
    logo_width: int,
    logo_height: int,
) -> Tuple[int, int]:
    """Top-left corner that centers the logo. Odd differences round down."""
    return (target_width - logo_width) // 2, (target_height - logo_height) // 2


def screen_blend(
    base: np.ndarray,
    overlay: np.ndarray,
    alpha: Optional[np.ndarray] = None,
    opacity_source: float = 1.0,
) -> np.ndarray:
    """
    Screen blend ``1 - (1-base)*(1-overlay)`` per channel.

    Args:
        base: (H, W, 3) uint8.
        overlay: (H, W, 3) uint8, same shape as *base*.
        alpha: optional (H, W) uint8 coverage of the overlay.
        opacity_source: overlay strength in [0, 1].

    Returns:
        np.ndarray: new (H, W, 3) uint8 array; inputs are not modified.
    """
    b = base.astype(np.float32) / 255.0
    o = overlay.astype(np.float32) / 255.0
    screened = 1.0 - (1.0 - b) * (1.0 - o)

    if alpha is None:
        a = np.float32(opacity_source)
    else:
        a = (alpha.astype(np.float32) / 255.0 * opacity_source)[..., None]

    out = b * (1.0 - a) + screened * a
    return np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)


def composite_screen(
    base: np.ndarray,
    overlay_rgba: np.ndarray,
    x: int,
    y: int,
    opacity_source: float = 1.0,
    opacity_dest: float = 1.0,
) -> np.ndarray:
    """
    Screen-blend *overlay_rgba* onto a copy of *base* with its top-left
    corner at (x, y). Parts falling outside *base* are clipped.

    *opacity_dest* scales the whole base layer, not only the part under
    the overlay.
    """
    if opacity_dest == 1.0:
        out = base.copy()
    else:
        out = np.clip(np.rint(base.astype(np.float32) * opacity_dest), 0, 255).astype(np.uint8)
    base_h, base_w = base.shape[:2]
    ov_h, ov_w = overlay_rgba.shape[:2]

    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + ov_w, base_w), min(y + ov_h, base_h)
    if x0 >= x1 or y0 >= y1:
        return out

    region = overlay_rgba[y0 - y:y1 - y, x0 - x:x1 - x]
    alpha = region[..., 3] if region.shape[2] == 4 else None
    out[y0:y1, x0:x1] = screen_blend(
        out[y0:y1, x0:x1], region[..., :3], alpha, opacity_source
    )
    return out


def _interpolation(src_width: int, dst_width: int) -> int:
    return cv2.INTER_AREA if dst_width < src_width else cv2.INTER_LINEAR


def resize_to(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    if (pixels.shape[1], pixels.shape[0]) == (width, height):
        return pixels.copy()
    return cv2.resize(
        pixels, (width, height), interpolation=_interpolation(pixels.shape[1], width)
    )


def rescale_to_width(pixels: np.ndarray, max_width: int) -> np.ndarray:
    """
    Uniformly scale by ``max_width / width``. Narrower images are enlarged.
    """
    h, w = pixels.shape[:2]
    scale = max_width / w
    new_height = max(1, int(round(h * scale)))
    return resize_to(pixels, max_width, new_height)


class WatermarkService:
    """
    Business-level compositor. Returns a **new** Image; the decoded bitmap
    is left as it was.
    """

    def __init__(self, config: PipelineConfig, image_service: Optional[ImageService] = None):
        self.config = config
        self.image_service = image_service or ImageService(jpeg_quality=config.jpeg_quality)

    def check_asset(self) -> Image:
        """Load the watermark once so a missing asset stops the run early."""
        return self.image_service.load_watermark(self.config.watermark_path)

    def apply(self, decoded: DecodedImage) -> WatermarkedImage:
        """
        Raises:
            AssetError: the watermark could not be loaded.
        """
        # Loaded on every call, never cached.
        logo = self.image_service.load_watermark(self.config.watermark_path)
        target = decoded.image

        logo_w, logo_h = watermark_size(
            target.width, logo.width, logo.height, self.config.margin_percent
        )
        resized_logo = resize_to(logo.pixels, logo_w, logo_h)
        x, y = placement(target.width, target.height, logo_w, logo_h)
        logger.debug(
            f"Watermark {logo_w}x{logo_h} at ({x}, {y}) on {target.width}x{target.height}"
        )

        composited = composite_screen(
            target.pixels,
            resized_logo,
            x,
            y,
            opacity_source=self.config.opacity_source,
            opacity_dest=self.config.opacity_dest,
        )
        scaled = rescale_to_width(composited, self.config.max_width)

        return WatermarkedImage(
            decoded=decoded,
            watermarked=Image(pixels=scaled, path=decoded.ref.path),
        )
