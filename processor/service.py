"""
Text Extraction Service

Resolves stored document references to bytes and turns those bytes into
normalised text using the adapter for the document's type.

Example:
    >>> service = TextExtractionService(upload_dir="uploads")
    >>> text = await service.extract_from_url("/api/v1/files/essay.pdf")
"""

import asyncio
import io
import re
import logging
import mimetypes
from pathlib import Path
from typing import Any

from .adapters import (
    get_adapter,
    ContentProcessingError,
    ExtractionError,
    UnsupportedFileTypeError,
    InvalidFileError
)

logger = logging.getLogger(__name__)

# Prefix under which uploaded files are served
FILES_URL_PREFIX = "/api/v1/files/"


class TextExtractionService:
    """
    Extracts text from uploaded documents.

    Args:
        upload_dir: Directory holding uploaded files.
        max_file_size: Maximum allowed document size in bytes (default: 50MB).
        max_pages: Maximum number of PDF pages read per document.
    """

    def __init__(self, upload_dir: str = "uploads", max_file_size: int = 50 * 1024 * 1024, max_pages: int = 50):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_file_size = max_file_size
        self.max_pages = max_pages

        mimetypes.init()

        logger.info(f"TextExtractionService initialized with upload directory: {self.upload_dir}")

    def resolve_path(self, document_url: str) -> Path:
        """Map a stored document URL to a path inside the upload directory.

        Raises:
            InvalidFileError: the URL points outside the upload directory.
        """
        relative = document_url
        if relative.startswith(FILES_URL_PREFIX):
            relative = relative[len(FILES_URL_PREFIX):]
        relative = relative.lstrip("/")

        path = (self.upload_dir / relative).resolve()
        if not path.is_relative_to(self.upload_dir):
            raise InvalidFileError(filename=document_url, message=f"Path escapes upload directory: {document_url}")
        return path

    async def read_document(self, document_url: str) -> bytes:
        """Read a stored document's bytes without blocking the event loop."""
        path = self.resolve_path(document_url)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise InvalidFileError(filename=path.name, message=f"File not found: {path.name}") from e
        except OSError as e:
            raise ContentProcessingError(f"Failed to read {path.name}: {str(e)}") from e

    def _validate_file_size(self, size: int) -> None:
        """Validate that the document size is within allowed limits."""
        if size > self.max_file_size:
            raise ContentProcessingError(
                f"File size {size} exceeds maximum allowed size of {self.max_file_size} bytes"
            )

    async def extract_text(self, document_bytes: bytes, filename: str = "document.pdf", **adapter_kwargs: Any) -> str:
        """
        Extract normalised text from a document.

        Args:
            document_bytes: Raw document content.
            filename: Name used to pick the adapter by file type.
            **adapter_kwargs: Additional arguments to pass to the adapter.

        Returns:
            Text with CRLF normalised, runs of blank lines collapsed and
            surrounding whitespace trimmed.

        Raises:
            UnsupportedFileTypeError: If no adapter is available for the file type.
            InvalidFileError: If the document is invalid or corrupted.
            ExtractionError: If the document holds no extractable text.
            ContentProcessingError: For other processing errors.
        """
        try:
            self._validate_file_size(len(document_bytes))

            adapter = get_adapter(filename)
            if not adapter:
                mime_type, _ = mimetypes.guess_type(filename)
                raise UnsupportedFileTypeError(
                    file_type=mime_type or 'unknown',
                    message=f"No adapter available for file type: {mime_type or 'unknown'}"
                )

            logger.debug(f"Using adapter: {adapter.__class__.__name__} for {filename}")

            file = io.BytesIO(document_bytes)
            if not await adapter.is_valid(file):
                raise InvalidFileError(
                    filename=filename,
                    message="File is invalid or corrupted"
                )

            adapter_kwargs.setdefault("max_pages", self.max_pages)
            text = self.normalize_text(await adapter.extract_text(file, **adapter_kwargs))
            if not text:
                raise ExtractionError(filename=filename)

            logger.info(f"Extracted {len(text)} characters from {filename}")
            return text

        except ContentProcessingError:
            raise

        except Exception as e:
            logger.error(f"Unexpected error extracting {filename}: {str(e)}", exc_info=True)
            raise ContentProcessingError(
                f"An unexpected error occurred while extracting {filename}: {str(e)}"
            ) from e

    async def extract_from_url(self, document_url: str) -> str:
        """Read a stored document and extract its text."""
        document_bytes = await self.read_document(document_url)
        return await self.extract_text(document_bytes, filename=Path(document_url).name or "document.pdf")

    @staticmethod
    def normalize_text(text: str) -> str:
        """
        Normalise line endings and blank lines.

        Example:
            >>> TextExtractionService.normalize_text("a\\r\\n\\n\\n\\nb  ")
            'a\\n\\nb'
        """
        text = text.replace("\r\n", "\n")
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()
