from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


@dataclass(frozen=True)
class PipelineConfig:
    """
    Read-only settings for one batch run.

    Defaults are the tool's historical constants; every field can be
    overridden through the environment (or a ``.env`` file).
    """
    input_dir: Path = Path("input")
    output_dir: Path = Path("output")
    watermark_path: Path = Path("watermark.png")
    margin_percent: float = 5          # logo margin on each side, % of image width
    opacity_percent: float = 100       # watermark layer
    base_opacity_percent: float = 100  # image layer
    max_width: int = 1000              # final output width
    pre_resize: int = 1000             # coarse bound used during conversion
    jpeg_quality: int = 90
    convert_timeout: float | None = None
    workers: int = 1
    fail_fast: bool = False

    def __post_init__(self):
        # Resolve once so the input -> output path mapping is stable.
        object.__setattr__(self, "input_dir", Path(self.input_dir).resolve())
        object.__setattr__(self, "output_dir", Path(self.output_dir).resolve())
        object.__setattr__(self, "watermark_path", Path(self.watermark_path).resolve())
        self._validate()

    def _validate(self) -> None:
        if not 0 <= self.margin_percent < 50:
            raise ValueError(f"margin_percent must be in [0, 50), got {self.margin_percent}")
        for name in ("opacity_percent", "base_opacity_percent"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be in [0, 100], got {value}")
        for name in ("max_width", "pre_resize"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be in [1, 100], got {self.jpeg_quality}")
        if self.convert_timeout is not None and self.convert_timeout <= 0:
            raise ValueError(f"convert_timeout must be positive, got {self.convert_timeout}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    @property
    def opacity_source(self) -> float:
        return self.opacity_percent / 100

    @property
    def opacity_dest(self) -> float:
        return self.base_opacity_percent / 100

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Build a config from environment variables (loads ``.env`` first)."""
        load_dotenv()
        return cls(
            input_dir=Path(os.getenv("INPUT_DIR", "input")),
            output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            watermark_path=Path(os.getenv("WATERMARK_PATH", "watermark.png")),
            margin_percent=float(os.getenv("LOGO_MARGIN_PERCENTAGE", "5")),
            opacity_percent=float(os.getenv("LOGO_OPACITY_PERCENTAGE", "100")),
            base_opacity_percent=float(os.getenv("BASE_OPACITY_PERCENTAGE", "100")),
            max_width=int(os.getenv("IMAGE_MAX_WIDTH", "1000")),
            pre_resize=int(os.getenv("PRE_RESIZE_SIZE", "1000")),
            jpeg_quality=int(os.getenv("JPEG_QUALITY", "90")),
            convert_timeout=_env_optional_float("CONVERT_TIMEOUT_SECONDS"),
            workers=int(os.getenv("WORKERS", "1")),
            fail_fast=_env_bool("FAIL_FAST", False),
        )
