"""
Archive-to-PDF pipeline stages.

Stages, in order:
1. pages - Extract an archive and drop byte-identical page documents
2. render - Render each unique page to a one-page PDF and merge them in page order
3. ocr - Add a searchable text layer (ocrmypdf)
4. compress - Recompress OCR PDFs into small LLM-friendly PDFs (ghostscript)
"""
