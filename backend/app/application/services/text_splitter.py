"""Recursive character splitter tuned for rulebooks, bylaws and policy documents."""

import re

# Tried in order; structural headings first, whitespace last.
LEGAL_SEPARATORS: tuple[str, ...] = (
    "\nARTICLE ",
    "\nSECTION ",
    "\nSection ",
    "\nCHAPTER ",
    "\nPART ",
    "\nRule ",
    "\n## ",
    "\n### ",
    "\n\n",
    "\n",
    " ",
)

_DEFAULT_CHUNK_SIZE = 1500
_DEFAULT_CHUNK_OVERLAP = 200


class TextSplitter:
    """Split text into overlapping chunks of at most ``chunk_size`` characters.

    The first separator present in the text is used; a piece that is still
    too long is split again with the remaining separators. A run without any
    separator is hard-cut.
    """

    def __init__(
        self,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = _DEFAULT_CHUNK_OVERLAP,
        separators: tuple[str, ...] = LEGAL_SEPARATORS,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = separators

    def split(self, text: str) -> list[str]:
        text = text.strip()
        if not text:
            return []
        if len(text) <= self._chunk_size:
            return [text]

        chunks: list[str] = []
        self._recursive_split(text, list(self._separators), chunks)
        return chunks

    def _recursive_split(self, text: str, separators: list[str], chunks: list[str]) -> None:
        if len(text) <= self._chunk_size:
            if text.strip():
                chunks.append(text.strip())
            return

        sep_index = next((i for i, sep in enumerate(separators) if sep in text), None)
        if sep_index is None:
            self._hard_split(text, chunks)
            return

        sep = separators[sep_index]
        remaining = separators[sep_index + 1 :]
        heading = sep.lstrip("\n")
        current = ""

        for i, part in enumerate(text.split(sep)):
            # A heading separator stays with the section it introduces.
            piece = part if i == 0 else heading + part
            if len(piece) > self._chunk_size:
                if current.strip():
                    chunks.append(current.strip())
                    current = ""
                self._recursive_split(piece, remaining, chunks)
                continue

            candidate = f"{current}{sep}{part}" if current else piece
            if len(candidate) > self._chunk_size and current:
                chunks.append(current.strip())
                overlap = current[-self._chunk_overlap :] if self._chunk_overlap else ""
                joined = f"{overlap}{sep}{part}" if overlap else piece
                current = joined if len(joined) <= self._chunk_size else piece
            else:
                current = candidate

        if current.strip():
            chunks.append(current.strip())

    def _hard_split(self, text: str, chunks: list[str]) -> None:
        step = self._chunk_size - self._chunk_overlap
        for start in range(0, len(text), step):
            piece = text[start : start + self._chunk_size].strip()
            if piece:
                chunks.append(piece)
            if start + self._chunk_size >= len(text):
                break


# ── Cleaning & section titles ────────────────────────────────────────

_SECTION_PATTERNS = (
    re.compile(r"^(ARTICLE\s+[IVXLCDM\d]+[.:]\s*.+)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^(SECTION\s+[\d.]+[.:]\s*.+)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^(CHAPTER\s+\d+[.:]\s*.+)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^(Rule\s+[\d.]+[.:]\s*.+)", re.IGNORECASE | re.MULTILINE),
)

_CLEANUPS = (
    (re.compile(r"\r\n?"), "\n"),
    (re.compile(r"\n{4,}"), "\n\n\n"),
    (re.compile(r"^\s*Page\s+\d+\s*(of\s+\d+)?\s*$", re.MULTILINE), ""),
    (re.compile(r"^\s*-\s*\d+\s*-\s*$", re.MULTILINE), ""),
    (re.compile(r"\f"), "\n\n"),
    (re.compile(r"\t"), " "),
    (re.compile(r" {3,}"), "  "),
)


def clean_text(text: str) -> str:
    """Normalize line endings and whitespace, drop page-number lines."""
    for pattern, replacement in _CLEANUPS:
        text = pattern.sub(replacement, text)
    return text.strip()


def extract_section_title(chunk: str) -> str | None:
    """First ARTICLE / SECTION / CHAPTER / Rule heading in *chunk*, if any."""
    for pattern in _SECTION_PATTERNS:
        match = pattern.search(chunk)
        if match:
            return match.group(1).strip()
    return None
