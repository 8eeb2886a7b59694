"""Document loading service for markdown knowledge-base files."""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from models.document import Document

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DocumentLoader:
    """Loads text documents from knowledge-base directories."""

    EXTENSIONS = (".md", ".markdown", ".txt")
    # Files under this top-level folder were crawled from the public site
    PAGES_DIR = "pages"

    def __init__(self, directories: Iterable[PathLike], root: Optional[PathLike] = None):
        """
        Initialize DocumentLoader.

        Args:
            directories: Directories to scan recursively
            root: Directory that source paths are made relative to
                  (defaults to the common parent of the given directories)
        """
        self.directories = [Path(d) for d in directories]
        if root is not None:
            self.root = Path(root)
        elif len(self.directories) == 1:
            self.root = self.directories[0].parent
        else:
            self.root = Path(*_common_parts(self.directories)) if self.directories else Path(".")

    def load_documents(self) -> List[Document]:
        """
        Load all text files from the configured directories.

        Missing directories are skipped with a warning.

        Returns:
            List of Document objects, sorted by source path
        """
        documents = []

        for directory in self.directories:
            if not directory.is_dir():
                logger.warning(f"Knowledge directory not found: {directory}")
                continue

            files = sorted(
                p for p in directory.rglob("*")
                if p.is_file() and p.suffix.lower() in self.EXTENSIONS
            )
            logger.info(f"Found {len(files)} files in {directory}")

            for path in files:
                documents.append(self._load_file(path))

        documents.sort(key=lambda d: d.source)
        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents

    def _load_file(self, path: Path) -> Document:
        source = self._relative_source(path)
        content = path.read_text(encoding="utf-8")
        return Document(source=source, content=content, url=self._page_url(source))

    def _relative_source(self, path: Path) -> str:
        try:
            relative = path.resolve().relative_to(self.root.resolve())
        except ValueError:
            relative = Path(path.name)
        return relative.as_posix()

    def _page_url(self, source: str) -> Optional[str]:
        prefix = f"{self.PAGES_DIR}/"
        if not source.startswith(prefix):
            return None
        return str(Path(source[len(prefix):]).with_suffix("").as_posix())


def _common_parts(paths: List[Path]) -> List[str]:
    resolved = [p.resolve().parts for p in paths]
    common = []
    for parts in zip(*resolved):
        if len(set(parts)) != 1:
            break
        common.append(parts[0])
    return common or ["."]
