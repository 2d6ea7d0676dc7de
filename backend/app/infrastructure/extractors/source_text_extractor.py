"""Text extractor for fetched catalog documents — PDF, HTML and plain text."""

import logging

import fitz  # PyMuPDF
from bs4 import BeautifulSoup

from app.application.interfaces.text_extractor import TextExtractor
from app.domain.entities.source_config import SourceFormat

logger = logging.getLogger(__name__)

# Tags that never carry document text.
_NON_CONTENT_TAGS = ["script", "style", "noscript", "nav", "footer", "header", "head", "form"]


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return content.decode("latin-1")


class SourceTextExtractor(TextExtractor):
    """Infrastructure adapter that turns raw document bytes into plain text.

    - PDF: PyMuPDF (fitz), page texts joined by blank lines
    - HTML: BeautifulSoup, non-content tags removed
    - TEXT: decoded as UTF-8, falling back to latin-1
    """

    def supports(self, source_format: SourceFormat) -> bool:
        return source_format in (SourceFormat.PDF, SourceFormat.HTML, SourceFormat.TEXT)

    async def extract(self, content: bytes, source_format: SourceFormat) -> str:
        if source_format == SourceFormat.PDF:
            text = self._extract_pdf(content)
        elif source_format == SourceFormat.HTML:
            text = self._extract_html(content)
        elif source_format == SourceFormat.TEXT:
            text = _decode(content)
        else:
            raise ValueError(f"Unsupported format: {source_format}")

        logger.info("Extracted %d characters (%s)", len(text), source_format.value)
        return text

    # ── Format-specific handlers ─────────────────────────────────────

    @staticmethod
    def _extract_pdf(content: bytes) -> str:
        pages: list[str] = []
        with fitz.open(stream=content, filetype="pdf") as doc:
            for page_num, page in enumerate(doc):
                text = page.get_text("text")
                if text.strip():
                    pages.append(text)
                else:
                    logger.debug("Page %d has no text layer", page_num + 1)

        if not pages:
            logger.warning("PDF has no extractable text — may require OCR")
            return ""
        return "\n\n".join(pages)

    @staticmethod
    def _extract_html(content: bytes) -> str:
        soup = BeautifulSoup(_decode(content), "html.parser")
        for tag in soup.find_all(_NON_CONTENT_TAGS):
            tag.decompose()
        root = soup.find("main") or soup.find("article") or soup.body or soup
        return root.get_text(separator="\n", strip=True)
