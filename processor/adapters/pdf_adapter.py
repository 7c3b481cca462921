"""
PDF file adapter for text extraction.
"""

from typing import List, BinaryIO, Optional

import fitz  # PyMuPDF

from . import ContentAdapter, ContentProcessingError

class PDFAdapter(ContentAdapter):
    """Adapter for PDF files."""
    
    @classmethod
    def supported_mime_types(cls) -> List[str]:
        return [
            'application/pdf',
            'application/x-pdf',
            'application/acrobat',
            'application/vnd.pdf',
            'text/pdf',
            'text/x-pdf'
        ]
    
    async def extract_text(self, file: BinaryIO, max_pages: Optional[int] = None, **kwargs) -> str:
        """Extract text content from a PDF file.

        Args:
            file: PDF bytes as a file-like object
            max_pages: read at most this many pages from the start
        """
        try:
            file.seek(0)
            pdf_data = file.read()
            
            with fitz.open(stream=pdf_data, filetype="pdf") as doc:
                page_count = len(doc) if max_pages is None else min(len(doc), max_pages)
                text_parts = []
                for page_num in range(page_count):
                    page = doc.load_page(page_num)
                    text_parts.append(page.get_text("text"))
            
            return "\n\n".join(text_parts)
            
        except Exception as e:
            raise ContentProcessingError(f"Error extracting text from PDF: {str(e)}")
    
    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is a valid PDF."""
        try:
            file.seek(0)
            # Check PDF magic number
            magic = file.read(4)
            return magic == b'%PDF'
        except Exception:
            return False
        finally:
            file.seek(0)
