"""
Content extraction adapters for different file types.

This module provides a base adapter class and the PDF and plain-text
implementations used to read student submissions and reference answers.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, BinaryIO
import mimetypes

class ContentProcessingError(Exception):
    """Base exception for content processing errors."""
    pass

class UnsupportedFileTypeError(ContentProcessingError):
    """Raised when a file type is not supported."""
    def __init__(self, file_type: str, message: str = ""):
        self.file_type = file_type
        self.message = message or f"Unsupported file type: {file_type}"
        super().__init__(self.message)

class InvalidFileError(ContentProcessingError):
    """Raised when a file is invalid or corrupted."""
    def __init__(self, filename: str, message: str = ""):
        self.filename = filename
        self.message = message or f"Invalid or corrupted file: {filename}"
        super().__init__(self.message)

class ExtractionError(ContentProcessingError):
    """Raised when a valid document yields no usable text (image-only or empty)."""
    def __init__(self, filename: str, message: str = ""):
        self.filename = filename
        self.message = message or (
            f"No text could be extracted from {filename}. "
            "The document may be image-based or empty."
        )
        super().__init__(self.message)

class ContentAdapter(ABC):
    """Abstract base class for content extraction adapters."""
    
    @classmethod
    @abstractmethod
    def supported_mime_types(cls) -> List[str]:
        """Return a list of MIME types this adapter can handle."""
        pass
    
    @abstractmethod
    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Extract text content from the file."""
        pass
    
    @abstractmethod
    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is valid for this adapter."""
        pass


def get_adapter(file_path: str) -> Optional[ContentAdapter]:
    """
    Factory function to get the appropriate adapter for a file.
    
    Args:
        file_path: Path or name of the file to process
        
    Returns:
        An instance of the appropriate ContentAdapter subclass, or None if no adapter is found.
    """
    # Lazy import to avoid circular imports
    from .text_adapter import TextAdapter
    from .pdf_adapter import PDFAdapter
    
    mime_type, _ = mimetypes.guess_type(file_path)
    if not mime_type:
        return None
    
    for adapter_cls in [TextAdapter, PDFAdapter]:
        if mime_type in adapter_cls.supported_mime_types():
            return adapter_cls()
    
    return None
