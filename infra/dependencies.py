"""
Precondition checks for the external tools each stage needs.

Checked once, before any archive is touched, so a missing tool fails the
whole run up front instead of failing every archive in turn.
"""

import importlib.util
import shutil
from typing import List

from pipeline.compress.service import find_ghostscript


class MissingDependencyError(RuntimeError):
    def __init__(self, missing: List[str], hints: List[str] = None):
        self.missing = missing
        self.hints = hints or []
        message = f"Missing required dependencies: {', '.join(missing)}"
        if self.hints:
            message += "\n" + "\n".join(f"  {hint}" for hint in self.hints)
        super().__init__(message)


def missing_render_dependencies() -> List[str]:
    missing = []
    if importlib.util.find_spec("playwright") is None:
        missing.append("playwright (python package)")
    if importlib.util.find_spec("fitz") is None:
        missing.append("pymupdf (python package)")
    return missing


def missing_ocr_dependencies() -> List[str]:
    missing = []
    if importlib.util.find_spec("ocrmypdf") is None:
        missing.append("ocrmypdf (python package)")
    if shutil.which("tesseract") is None:
        missing.append("tesseract")
    return missing


def missing_compression_dependencies() -> List[str]:
    if find_ghostscript() is None:
        return ["gs (ghostscript)"]
    return []


INSTALL_HINTS = {
    "playwright (python package)": "pip install playwright && playwright install chromium",
    "pymupdf (python package)": "pip install pymupdf",
    "ocrmypdf (python package)": "pip install ocrmypdf",
    "tesseract": "macOS: brew install tesseract | Ubuntu: sudo apt-get install tesseract-ocr",
    "gs (ghostscript)": "macOS: brew install ghostscript | Ubuntu: sudo apt-get install ghostscript",
}


def ensure_dependencies(render: bool = True, ocr: bool = True, compression: bool = False) -> None:
    missing: List[str] = []
    if render:
        missing.extend(missing_render_dependencies())
    if ocr:
        missing.extend(missing_ocr_dependencies())
    if compression:
        missing.extend(missing_compression_dependencies())

    if missing:
        hints = [INSTALL_HINTS[name] for name in missing if name in INSTALL_HINTS]
        raise MissingDependencyError(missing, hints)
