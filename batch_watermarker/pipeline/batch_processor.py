"""
Batch Processor Pipeline
Walks the input tree and runs Convert -> Decode -> Watermark -> Write on
every file, one file's stages strictly in order.

Per-stage failure policy:
    plan       output path already claimed -> file FAILED, run continues
    convert    ConversionError / OSError   -> file FAILED, run continues
    decode     soft failure                -> file SKIPPED, run continues
    watermark  AssetError                  -> whole run aborts
    write      OSError                     -> file FAILED, run continues
With ``fail_fast`` the FAILED cases re-raise instead.
A file that is not SAVED leaves nothing at its output path.
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterator, List, Optional
import logging

from ..config import PipelineConfig
from ..errors import ConversionError, OutputCollisionError
from ..models.file_ref import FileRef
from ..models.run_summary import FileOutcome, FileResult, RunSummary
from ..repositories.file_repository import FileRepository
from ..services.conversion_service import ConversionService
from ..services.image_service import ImageService
from ..services.watermark_service import WatermarkService

logger = logging.getLogger(__name__)


class BatchProcessor:

    def __init__(
        self,
        config: PipelineConfig,
        *,
        file_repository: Optional[FileRepository] = None,
        conversion_service: Optional[ConversionService] = None,
        image_service: Optional[ImageService] = None,
        watermark_service: Optional[WatermarkService] = None,
    ):
        self.config = config
        self.file_repository = file_repository or FileRepository()
        self.conversion_service = conversion_service or ConversionService(config)
        self.image_service = image_service or ImageService(jpeg_quality=config.jpeg_quality)
        self.watermark_service = watermark_service or WatermarkService(
            config, image_service=self.image_service
        )

    def _tag(self, ref: FileRef) -> str:
        """Identifies the file on every log line, also under parallel runs."""
        try:
            return str(Path(ref.path).relative_to(self.config.input_dir))
        except ValueError:
            return str(ref.path)

    def _discard(self, ref: FileRef, tag: str) -> None:
        try:
            self.image_service.discard(ref)
        except OSError as err:
            logger.warning(f"│ [{tag}] Could not remove {ref.path}: {err}")

    # ─── Per file ──────────────────────────────────────────────────
    def process_file(self, ref: FileRef) -> FileResult:
        """
        Start -> Converted -> Parsed|Skipped -> Watermarked -> Saved.

        Raises:
            AssetError: the watermark could not be loaded.
        """
        tag = self._tag(ref)
        logger.info(f"┬ [{tag}] Running file: {ref.path}")

        try:
            converted = self.conversion_service.convert(ref)
        except (ConversionError, OSError) as err:
            # The tool may have left a partial JPEG behind.
            self._discard(ref.with_path(self.conversion_service.output_path(ref)), tag)
            if self.config.fail_fast:
                raise
            logger.error(f"└ [{tag}] Conversion failed: {err}")
            return FileResult(ref=ref, outcome=FileOutcome.FAILED, error=str(err))
        logger.info(f"├ [{tag}] Converted")

        decoded = self.image_service.decode(converted)
        if decoded is None:
            self._discard(converted, tag)
            logger.warning(f"└ [{tag}] Couldn't parse, skipping.")
            return FileResult(ref=ref, outcome=FileOutcome.SKIPPED)
        logger.info(f"├ [{tag}] Parsed")

        watermarked = self.watermark_service.apply(decoded)
        logger.info(f"├ [{tag}] Watermarked")

        try:
            output_path = self.image_service.save(watermarked)
        except OSError as err:
            if self.config.fail_fast:
                raise
            logger.error(f"└ [{tag}] Write failed: {err}")
            return FileResult(ref=ref, outcome=FileOutcome.FAILED, error=str(err))
        logger.info(f"└ [{tag}] Saved: {output_path}")

        return FileResult(ref=ref, outcome=FileOutcome.SAVED, output_path=output_path)

    # ─── Whole batch ───────────────────────────────────────────────
    def find_output_collisions(self, files: List[FileRef]) -> Dict[FileRef, FileRef]:
        """
        Map every file whose output path is already claimed by an earlier
        file (in walk order) to that earlier file. ``a.bmp`` and ``a.jpg``
        both become ``a.jpg``.
        """
        claimed: Dict[Path, FileRef] = {}
        collisions: Dict[FileRef, FileRef] = {}
        for ref in files:
            first = claimed.setdefault(self.conversion_service.output_path(ref), ref)
            if first is not ref:
                collisions[ref] = first
        return collisions

    def _reject_collision(self, ref: FileRef, first: FileRef) -> FileResult:
        err = OutputCollisionError(ref.path, self.conversion_service.output_path(ref), first.path)
        if self.config.fail_fast:
            raise err
        logger.error(f"─ [{self._tag(ref)}] Not processed: {err}")
        return FileResult(ref=ref, outcome=FileOutcome.FAILED, error=str(err))

    def _process_all(self, files: List[FileRef]) -> Iterator[FileResult]:
        collisions = self.find_output_collisions(files)

        def process(ref: FileRef) -> FileResult:
            first = collisions.get(ref)
            if first is not None:
                return self._reject_collision(ref, first)
            return self.process_file(ref)

        if self.config.workers == 1 or len(files) <= 1:
            for ref in files:
                yield process(ref)
            return

        # map() hands results back in walk order.
        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            yield from executor.map(process, files)

    def run(self) -> RunSummary:
        """
        Process every file under the input root.

        Raises:
            AssetError: the watermark is unusable (checked before any file).
            OSError: the input tree could not be walked.
        """
        self.watermark_service.check_asset()

        logger.info(f"─ Reading directory: {self.config.input_dir}")
        files = self.file_repository.list_files(
            self.config.input_dir,
            exclude=[self.config.output_dir, self.config.watermark_path],
        )
        logger.info(f"─ Found {len(files)} file(s)")

        summary = RunSummary()
        for result in self._process_all(files):
            summary.add(result)

        log_summary(summary)
        return summary


def log_summary(summary: RunSummary) -> None:
    logger.info(
        f"─ Done: {summary.processed} processed, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    for result in summary.results:
        if result.outcome is FileOutcome.FAILED:
            logger.info(f"  failed: {result.ref.path}: {result.error}")
