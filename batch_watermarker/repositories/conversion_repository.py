# repositories/conversion_repository.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union
import logging
import shutil
import subprocess

from ..errors import ConversionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MagickToolchain:
    """Command prefix used to run ImageMagick."""
    command: List[str]

    @property
    def backend(self) -> str:
        if Path(self.command[0]).name.startswith("magick"):
            return "imagemagick:magick"
        return "imagemagick:convert"


def detect_toolchain() -> MagickToolchain | None:
    """
    Prefer ImageMagick 7's ``magick``; fall back to the legacy ``convert``.
    """
    magick = shutil.which("magick")
    if magick:
        return MagickToolchain(command=[magick])
    convert = shutil.which("convert")
    if convert:
        return MagickToolchain(command=[convert])
    return None


class ConversionRepository:
    """
    Thin wrapper around the ImageMagick command line.

    • One subprocess per file, no retries.
    • Only the first frame of multi-frame inputs is converted.
    """

    def __init__(
        self,
        toolchain: MagickToolchain | None = None,
        timeout: float | None = None,
    ) -> None:
        self._toolchain = toolchain
        self.timeout = timeout

    @property
    def toolchain(self) -> MagickToolchain | None:
        if self._toolchain is None:
            self._toolchain = detect_toolchain()
            if self._toolchain is not None:
                logger.debug(f"Using {self._toolchain.backend}: {self._toolchain.command[0]}")
        return self._toolchain

    @staticmethod
    def build_command(
        toolchain: MagickToolchain,
        src: Path,
        dest: Path,
        max_size: int,
    ) -> List[str]:
        # "NxN>" only ever shrinks, keeping the aspect ratio.
        return toolchain.command + [
            f"{src}[0]",
            "-resize", f"{max_size}x{max_size}>",
            str(dest),
        ]

    def convert_to_jpeg(
        self,
        src: Union[str, Path],
        dest: Union[str, Path],
        max_size: int,
    ) -> Path:
        src, dest = Path(src), Path(dest)
        toolchain = self.toolchain
        if toolchain is None:
            raise ConversionError(
                src, "ImageMagick not found (need `magick` or `convert` on PATH)"
            )

        cmd = self.build_command(toolchain, src, dest, max_size)
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as err:
            dest.unlink(missing_ok=True)
            raise ConversionError(src, f"timed out after {self.timeout}s", command=cmd) from err
        except OSError as err:
            raise ConversionError(src, str(err), command=cmd) from err

        if proc.returncode != 0:
            # ImageMagick can write a truncated JPEG and still exit non-zero.
            dest.unlink(missing_ok=True)
            raise ConversionError(
                src,
                f"exit status {proc.returncode}",
                command=cmd,
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        if not dest.is_file():
            raise ConversionError(
                src, "no output written", command=cmd, returncode=proc.returncode, stderr=proc.stderr
            )
        return dest
