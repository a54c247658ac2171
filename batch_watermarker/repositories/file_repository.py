from pathlib import Path
from typing import Iterable, Iterator, List, Union
import logging

from ..models.file_ref import FileRef

logger = logging.getLogger(__name__)


class FileRepository:
    """
    Recursive directory listing for the batch.

    Order: every file directly in a directory (by name), then each
    subdirectory (by name) recursively. Symlinked directories are not
    followed. Unreadable directories raise instead of being dropped.
    """

    def iter_files(
        self,
        root: Union[str, Path],
        *,
        exclude: Iterable[Union[str, Path]] = (),
    ) -> Iterator[FileRef]:
        """
        Yield FileRefs lazily. Paths in *exclude* (files or directories) are
        left out, which keeps an output tree nested in the input tree from
        being walked.
        """
        root = Path(root)
        if not root.exists():
            raise FileNotFoundError(f"Input directory does not exist: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Input path is not a directory: {root}")

        excluded = {Path(p).resolve() for p in exclude}
        yield from self._walk(root, excluded)

    def _walk(self, directory: Path, excluded: set) -> Iterator[FileRef]:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)

        subdirectories = []
        for entry in entries:
            if entry.resolve() in excluded:
                logger.debug(f"Excluded from walk: {entry}")
                continue
            if entry.is_dir():
                if entry.is_symlink():
                    logger.debug(f"Not following symlinked directory: {entry}")
                    continue
                subdirectories.append(entry)
            elif entry.is_file():
                yield FileRef(path=entry, source_directory=directory)

        for subdirectory in subdirectories:
            yield from self._walk(subdirectory, excluded)

    def list_files(
        self,
        root: Union[str, Path],
        *,
        exclude: Iterable[Union[str, Path]] = (),
    ) -> List[FileRef]:
        """
        Materialized walk: the whole list is known before processing starts.
        """
        files: List[FileRef] = []
        for ref in self.iter_files(root, exclude=exclude):
            files.append(ref)
        return files
