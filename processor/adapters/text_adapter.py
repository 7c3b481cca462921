"""
Text file adapter for text extraction.
"""

from typing import List, BinaryIO
from . import ContentAdapter, ContentProcessingError

class TextAdapter(ContentAdapter):
    """Adapter for plain text files."""
    
    @classmethod
    def supported_mime_types(cls) -> List[str]:
        return [
            'text/plain',
            'text/markdown',
            'text/csv',
            'text/tab-separated-values',
            'application/json',
            'application/xml',
        ]
    
    async def extract_text(self, file: BinaryIO, **kwargs) -> str:
        """Extract text content from a text file."""
        try:
            file.seek(0)
            return file.read().decode('utf-8')
        except UnicodeDecodeError as e:
            raise ContentProcessingError(f"Failed to decode text file: {str(e)}")
        except Exception as e:
            raise ContentProcessingError(f"Error processing text file: {str(e)}")
    
    async def is_valid(self, file: BinaryIO) -> bool:
        """Check if the file is a valid text file."""
        try:
            # Try to decode a small chunk as UTF-8
            file.seek(0)
            chunk = file.read(1024)
            chunk.decode('utf-8')
            return True
        except UnicodeDecodeError:
            return False
        except Exception:
            return False
        finally:
            file.seek(0)
