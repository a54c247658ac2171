from pathlib import Path
import shutil

import pytest
from PIL import Image as PILImage

from batch_watermarker.config import PipelineConfig
from batch_watermarker.errors import ConversionError


def write_image(path: Path, size, color=(128, 128, 128), mode="RGB") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    PILImage.new(mode, size, color).save(path)
    return path


def write_garbage(path: Path, data: bytes = b"this is not an image") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


class FakeConversionRepository:
    """
    Stands in for ImageMagick. Pillow does the conversion; files Pillow
    cannot open are copied through unchanged so decoding fails later.
    """

    def __init__(self, fail_on=(), leave_partial=False):
        self.fail_on = set(fail_on)
        self.leave_partial = leave_partial
        self.calls = []

    def convert_to_jpeg(self, src, dest, max_size):
        src, dest = Path(src), Path(dest)
        self.calls.append((src, dest, max_size))
        if src.name in self.fail_on:
            if self.leave_partial:
                # Truncated JPEG written before the tool gives up.
                dest.write_bytes(b"\xff\xd8partial")
            raise ConversionError(src, "exit status 1", returncode=1, stderr="convert: no decode delegate")
        try:
            with PILImage.open(src) as img:
                rgb = img.convert("RGB")
                rgb.thumbnail((max_size, max_size))
                rgb.save(dest, format="JPEG", quality=95)
        except OSError:
            shutil.copyfile(src, dest)
        return dest


@pytest.fixture
def config(tmp_path) -> PipelineConfig:
    return PipelineConfig(
        input_dir=tmp_path / "input",
        output_dir=tmp_path / "output",
        watermark_path=tmp_path / "watermark.png",
    )


@pytest.fixture
def watermark(config) -> Path:
    # Opaque white logo, 3:1 aspect ratio.
    return write_image(config.watermark_path, (300, 100), color=(255, 255, 255, 255), mode="RGBA")


@pytest.fixture
def fake_converter() -> FakeConversionRepository:
    return FakeConversionRepository()
