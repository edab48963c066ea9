#!/usr/bin/env python3
"""
Bookbinder CLI - Turn e-reader page archives into searchable PDFs

Commands:
  bookbinder batch [--llm] [--workers N]     Process every archive in input/ (auto-resume)
  bookbinder status                          Show per-archive progress
  bookbinder pdf <dir> [-o out] [--split]    Render page HTML files into a PDF
  bookbinder ocr <pdf> [-o out] [--pages N]  Add a searchable text layer
  bookbinder compress [dir]                  Create LLM-friendly PDFs from *-ocr.pdf
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from cli import main


if __name__ == '__main__':
    main()
