"""Abstract interface (port) for turning fetched documents into plain text."""

from abc import ABC, abstractmethod

from app.domain.entities.source_config import SourceFormat


class TextExtractor(ABC):
    """Port for text extraction — implemented in the infrastructure layer."""

    @abstractmethod
    async def extract(self, content: bytes, source_format: SourceFormat) -> str:
        """Extract plain text from a document body.

        Args:
            content: Raw document bytes.
            source_format: Declared catalog format of the document.

        Returns:
            The extracted text.
        """
        ...

    @abstractmethod
    def supports(self, source_format: SourceFormat) -> bool:
        """Check if the extractor supports the given format."""
        ...
