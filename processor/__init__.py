"""Document text extraction for the grading backend.

Adapters turn uploaded documents (PDF, plain text) into text; the
:class:`processor.service.TextExtractionService` resolves upload URLs,
validates documents and normalises the extracted text.
"""
