# src/localmind/loaders/html.py
"""HTML file loader - converts HTML to markdown for LLM consumption."""

import logging
from pathlib import Path

from bs4 import BeautifulSoup
from markdownify import markdownify

from localmind.loaders.base import Loader
from localmind.loaders.text import read_file
from localmind.models import Document

logger = logging.getLogger(__name__)


def clean_markdown(text: str) -> str:
    """Collapse runs of blank lines and strip trailing whitespace."""
    cleaned: list[str] = []
    prev_blank = False
    for line in text.split("\n"):
        line = line.rstrip()
        is_blank = not line
        if is_blank and prev_blank:
            continue
        cleaned.append(line)
        prev_blank = is_blank
    return "\n".join(cleaned).strip()


class HTMLLoader(Loader):
    """Load HTML files and convert them to markdown.

    Scripts, styles and navigation elements are removed before conversion
    so that only readable content reaches the index.
    """

    SUPPORTED_EXTENSIONS = {".html", ".htm"}

    # Tags to remove entirely (including their content)
    REMOVE_TAGS = ["script", "style", "nav", "footer", "header", "aside", "noscript"]

    def supports(self, path: str) -> bool:
        """Check if this loader supports the given file."""
        return Path(path).suffix.lower() in self.SUPPORTED_EXTENSIONS

    def to_markdown(self, html: str) -> str:
        """Convert an HTML string to cleaned markdown."""
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(self.REMOVE_TAGS):
            tag.decompose()
        return clean_markdown(markdownify(str(soup), heading_style="ATX"))

    def load(self, path: str, origin: str | None = None) -> Document:
        file_path, content = read_file(path)
        markdown = self.to_markdown(content) if content.strip() else ""
        logger.debug("Converted %s to %d characters of markdown", file_path, len(markdown))
        return Document(origin=origin or str(file_path.resolve()), content=markdown)
