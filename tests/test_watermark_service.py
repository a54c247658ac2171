import numpy as np
import pytest

from batch_watermarker.config import PipelineConfig
from batch_watermarker.errors import AssetError
from batch_watermarker.models.file_ref import FileRef
from batch_watermarker.models.image import Image
from batch_watermarker.models.processed_image import DecodedImage
from batch_watermarker.services.image_service import ImageService
from batch_watermarker.services.watermark_service import (
    WatermarkService,
    composite_screen,
    placement,
    rescale_to_width,
    screen_blend,
    watermark_size,
)


def decoded_of(pixels, tmp_path):
    path = tmp_path / "output" / "a.jpg"
    return DecodedImage(
        ref=FileRef(path=path, source_directory=tmp_path / "input"),
        image=Image(pixels=pixels, path=path),
    )


# ─── Geometry ──────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "target_w, logo_w, logo_h, margin, expected",
    [
        (600, 300, 100, 5, (540, 180)),
        (1000, 200, 50, 5, (900, 225)),
        (400, 100, 100, 0, (400, 400)),
        (1000, 300, 100, 10, (800, 267)),
    ],
)
def test_watermark_size(target_w, logo_w, logo_h, margin, expected):
    assert watermark_size(target_w, logo_w, logo_h, margin) == expected


def test_watermark_size_never_collapses_to_zero():
    assert watermark_size(1, 1000, 1, 5) == (1, 1)


def test_placement_is_centered():
    assert placement(600, 400, 540, 180) == (30, 110)


def test_placement_floors_odd_differences():
    assert placement(101, 51, 50, 20) == (25, 15)


# ─── Blending ──────────────────────────────────────────────────────
def test_screen_blend_formula():
    base = np.array([[[0, 255, 128]]], dtype=np.uint8)
    overlay = np.array([[[200, 17, 128]]], dtype=np.uint8)

    out = screen_blend(base, overlay)

    # 1 - (1 - 128/255)^2 -> 191.75
    assert out.tolist() == [[[200, 255, 192]]]


def test_screen_blend_respects_alpha_and_opacity():
    base = np.full((1, 2, 3), 100, dtype=np.uint8)
    overlay = np.full((1, 2, 3), 255, dtype=np.uint8)
    alpha = np.array([[0, 255]], dtype=np.uint8)

    out = screen_blend(base, overlay, alpha, opacity_source=0.4)

    assert out[0, 0].tolist() == [100, 100, 100]
    # 100 * 0.6 + 255 * 0.4
    assert out[0, 1].tolist() == [162, 162, 162]


def test_screen_blend_does_not_modify_inputs():
    base = np.full((2, 2, 3), 50, dtype=np.uint8)
    overlay = np.full((2, 2, 3), 60, dtype=np.uint8)
    base_before, overlay_before = base.copy(), overlay.copy()

    screen_blend(base, overlay)

    assert np.array_equal(base, base_before)
    assert np.array_equal(overlay, overlay_before)


def test_composite_clips_overlay_outside_base():
    base = np.zeros((4, 4, 3), dtype=np.uint8)
    overlay = np.full((6, 2, 4), 255, dtype=np.uint8)

    out = composite_screen(base, overlay, x=1, y=-1)

    assert out[:, 1:3].min() == 255
    assert out[:, 0].max() == 0
    assert out[:, 3].max() == 0
    assert base.max() == 0


def test_base_opacity_applies_to_the_whole_image():
    base = np.full((6, 6, 3), 200, dtype=np.uint8)
    # Black screens to the base colour, so only the base opacity shows.
    overlay = np.zeros((2, 2, 4), dtype=np.uint8)
    overlay[..., 3] = 255

    out = composite_screen(base, overlay, x=2, y=2, opacity_dest=0.5)

    assert out.min() == out.max() == 100
    assert base.min() == 200


# ─── Rescale ───────────────────────────────────────────────────────
@pytest.mark.parametrize("width, height", [(400, 300), (2000, 1000), (1000, 10), (3, 2)])
def test_rescale_always_lands_on_max_width(width, height):
    pixels = np.zeros((height, width, 3), dtype=np.uint8)

    out = rescale_to_width(pixels, 1000)

    assert out.shape[1] == 1000
    assert out.shape[0] == round(height * 1000 / width)


# ─── Service ───────────────────────────────────────────────────────
def test_apply_centers_logo_on_target(tmp_path, watermark):
    config = PipelineConfig(
        input_dir=tmp_path / "input",
        output_dir=tmp_path / "output",
        watermark_path=watermark,
        max_width=600,  # no final rescale, so pixels can be checked exactly
    )
    target = np.zeros((400, 600, 3), dtype=np.uint8)
    decoded = decoded_of(target, tmp_path)

    result = WatermarkService(config).apply(decoded)
    out = result.watermarked.pixels

    assert out.shape == (400, 600, 3)
    assert out[110:290, 30:570].min() == 255
    assert out[:110].max() == 0
    assert out[290:].max() == 0
    assert out[:, :30].max() == 0
    assert out[:, 570:].max() == 0
    # The decoded bitmap is left alone.
    assert decoded.image.pixels.max() == 0
    assert result.decoded is decoded


def test_apply_rescales_to_max_width(config, watermark, tmp_path):
    target = np.full((400, 600, 3), 30, dtype=np.uint8)

    result = WatermarkService(config).apply(decoded_of(target, tmp_path))

    assert result.watermarked.width == 1000
    assert result.watermarked.height == 667
    assert result.output_path == tmp_path / "output" / "a.jpg"


def test_apply_without_asset_raises(config, tmp_path):
    target = np.zeros((10, 10, 3), dtype=np.uint8)
    with pytest.raises(AssetError):
        WatermarkService(config).apply(decoded_of(target, tmp_path))


def test_watermark_is_loaded_on_every_call(config, watermark, tmp_path):
    class CountingImageService(ImageService):
        loads = 0

        def load_watermark(self, path):
            CountingImageService.loads += 1
            return super().load_watermark(path)

    service = WatermarkService(config, image_service=CountingImageService())
    target = np.zeros((20, 20, 3), dtype=np.uint8)

    service.apply(decoded_of(target, tmp_path))
    service.apply(decoded_of(target, tmp_path))

    assert CountingImageService.loads == 2
