from pathlib import Path
from typing import Optional, Union
import logging

from ..errors import DecodeError
from ..models.file_ref import FileRef
from ..models.image import Image
from ..models.processed_image import DecodedImage, WatermarkedImage
from ..repositories.image_repository import ImageRepository

logger = logging.getLogger(__name__)


class ImageService:
    """I/O helpers. No compositing logic here."""

    def __init__(self, jpeg_quality: int = 90):
        self.jpeg_quality = jpeg_quality
        self.image_repository = ImageRepository()

    def decode(self, ref: FileRef) -> Optional[DecodedImage]:
        """
        Decode the converted JPEG.

        Returns None when the file cannot be decoded (corrupt, empty,
        unsupported); the caller skips the file.
        """
        try:
            image = self.image_repository.load(ref.path)
        except DecodeError as err:
            logger.debug(f"Decode failed: {err}")
            return None
        return DecodedImage(ref=ref, image=image)

    def load_watermark(self, path: Union[str, Path]) -> Image:
        """Load the watermark asset fresh. Raises AssetError."""
        return self.image_repository.load_asset(path)

    def save(self, watermarked: WatermarkedImage) -> Path:
        """
        Write the composited bitmap to the file's output path.
        """
        image = watermarked.watermarked
        if image.path is None:
            image = Image(pixels=image.pixels, path=watermarked.output_path)
        return self.image_repository.save(image, quality=self.jpeg_quality)

    def discard(self, ref: FileRef) -> None:
        """Remove an intermediate file left by a skipped image."""
        self.image_repository.remove(ref.path)
