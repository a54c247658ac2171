from pathlib import Path
from typing import Optional, Union
import logging

from ..config import PipelineConfig
from ..models.file_ref import FileRef
from ..repositories.conversion_repository import ConversionRepository

logger = logging.getLogger(__name__)

OUTPUT_EXT = ".jpg"


def output_path_for(
    path: Union[str, Path],
    input_root: Union[str, Path],
    output_root: Union[str, Path],
) -> Path:
    """
    Map an input file to its place in the output tree.

    The input root is swapped for the output root and only the final
    extension is replaced: ``a.b.png`` -> ``a.b.jpg``, ``raw`` -> ``raw.jpg``.

    Raises:
        ValueError: if *path* is not under *input_root*.
    """
    relative = Path(path).relative_to(Path(input_root))
    return Path(output_root) / relative.with_suffix(OUTPUT_EXT)


class ConversionService:
    """
    Business-level conversion: decides where the JPEG goes, makes sure the
    mirrored directory exists and asks the repository to convert.
    """

    def __init__(
        self,
        config: PipelineConfig,
        conversion_repository: Optional[ConversionRepository] = None,
    ):
        self.config = config
        self.conversion_repository = conversion_repository or ConversionRepository(
            timeout=config.convert_timeout
        )

    def output_path(self, ref: FileRef) -> Path:
        return output_path_for(ref.path, self.config.input_dir, self.config.output_dir)

    def convert(self, ref: FileRef) -> FileRef:
        """
        Convert *ref* to a coarse-resized JPEG in the output tree.

        Returns:
            FileRef: copy of *ref* pointing at the JPEG.
        Raises:
            ConversionError: the tool failed.
            OSError: the output directory could not be created.
        """
        dest = self.output_path(ref)
        dest.parent.mkdir(parents=True, exist_ok=True)

        self.conversion_repository.convert_to_jpeg(ref.path, dest, self.config.pre_resize)
        logger.debug(f"Converted {ref.path} -> {dest}")
        return ref.with_path(dest)
