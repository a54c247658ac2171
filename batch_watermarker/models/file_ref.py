from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path


@dataclass(frozen=True)
class FileRef:
    """
    One file found under the input root.

    Frozen: every pipeline stage derives a new FileRef instead of
    editing this one.
    """
    path: Path              # Current location of the file (source, then converted JPEG)
    source_directory: Path  # Directory the walker found it in

    def with_path(self, path: Path) -> FileRef:
        return replace(self, path=Path(path))
