from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List

from .file_ref import FileRef


class FileOutcome(str, Enum):
    SAVED = "saved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FileResult:
    ref: FileRef
    outcome: FileOutcome
    output_path: Path | None = None
    error: str | None = None


@dataclass
class RunSummary:
    """
    Counts for one batch run plus the per-file results in walk order.
    """
    results: List[FileResult] = field(default_factory=list)

    def add(self, result: FileResult) -> None:
        self.results.append(result)

    def _count(self, outcome: FileOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def processed(self) -> int:
        return self._count(FileOutcome.SAVED)

    @property
    def skipped(self) -> int:
        return self._count(FileOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FileOutcome.FAILED)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
