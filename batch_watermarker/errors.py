"""
Error taxonomy for the batch pipeline.

Filesystem problems use Python's own ``OSError`` family; everything raised
here derives from ``WatermarkerError``.
"""
from __future__ import annotations
from pathlib import Path
from typing import Sequence


class WatermarkerError(Exception):
    """Base class for pipeline errors."""


class ConversionError(WatermarkerError):
    """The external conversion tool could not produce the JPEG."""

    def __init__(
        self,
        path: Path,
        reason: str,
        command: Sequence[str] | None = None,
        returncode: int | None = None,
        stderr: str | None = None,
    ):
        self.path = Path(path)
        self.reason = reason
        self.command = list(command) if command else None
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        msg = f"Conversion failed for {self.path}: {reason}"
        if self.stderr:
            msg += f" ({self.stderr})"
        super().__init__(msg)


class DecodeError(WatermarkerError):
    """The converted file could not be decoded. Soft failure: the file is skipped."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Image not found or unreadable: {self.path}")


class AssetError(WatermarkerError):
    """The watermark asset is missing or not a valid image."""

    def __init__(self, path: Path, reason: str = "missing or unreadable"):
        self.path = Path(path)
        super().__init__(f"Watermark asset {self.path} is {reason}")


class OutputCollisionError(WatermarkerError):
    """Two input files map to the same output path."""

    def __init__(self, path: Path, output_path: Path, claimed_by: Path):
        self.path = Path(path)
        self.output_path = Path(output_path)
        self.claimed_by = Path(claimed_by)
        super().__init__(
            f"Output path {self.output_path} for {self.path} is already used by {self.claimed_by}"
        )
