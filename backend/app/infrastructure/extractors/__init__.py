from .source_text_extractor import SourceTextExtractor

__all__ = ["SourceTextExtractor"]
