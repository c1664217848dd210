"""Text segmentation and validation components.

This package provides the pure, I/O-free building blocks used around the
text-generation and speech-synthesis stages.
"""

from .chunking import TextChunker
from .slug import slugify_title
from .validation import ContentValidator

__all__ = ["ContentValidator", "TextChunker", "slugify_title"]
