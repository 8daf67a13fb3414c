# src/localmind/loaders/text.py
"""Text and Markdown file loader."""

from pathlib import Path

from localmind.chunker import decode_text
from localmind.exceptions import IngestionError
from localmind.loaders.base import Loader
from localmind.models import Document


def read_file(path: str) -> tuple[Path, str]:
    """Read a file as UTF-8 text.

    Raises:
        IngestionError: If the file does not exist or cannot be decoded.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise IngestionError(f"File not found: {path}")
    try:
        raw = file_path.read_bytes()
    except OSError as e:
        raise IngestionError(f"Cannot read {path}: {e}") from e
    return file_path, decode_text(raw, origin=str(file_path))


class TextLoader(Loader):
    """Load plain text and markdown files verbatim.

    Chunking happens later in the ingestion pipeline, so the loader only
    decodes the file and records its origin.
    """

    SUPPORTED_EXTENSIONS = {".txt", ".md", ".markdown", ".text"}

    def supports(self, path: str) -> bool:
        """Check if this loader supports the given file."""
        return Path(path).suffix.lower() in self.SUPPORTED_EXTENSIONS

    def load(self, path: str, origin: str | None = None) -> Document:
        file_path, content = read_file(path)
        return Document(origin=origin or str(file_path.resolve()), content=content)
