"""
Builders and fakes for external tools.

The fakes still produce real PDF files (PyMuPDF) so merge and size checks
run against actual documents.
"""

import base64
import io
import random
import re
import shutil
import threading
import time
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import fitz
from PIL import Image

from pipeline.compress.service import RecompressionService
from pipeline.errors import PageRenderError, RendererCrashedError
from pipeline.ocr.service import OCRService
from pipeline.render.dimensions import PageDimensions
from pipeline.render.renderer import PageRenderer

MM_TO_PT = 72 / 25.4
MARKER_PATTERN = re.compile(rb'data-marker="([^"]+)"')


# ============================================================================
# Builders
# ============================================================================

def make_png(width: int = 60, height: int = 90, color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_page_html(marker: str, image: Optional[bytes] = None) -> bytes:
    image = image if image is not None else make_png()
    encoded = base64.b64encode(image).decode("ascii")
    return (
        f'<html><body data-marker="{marker}">'
        f'<img src="data:image/png;base64,{encoded}"/>'
        f'</body></html>'
    ).encode("utf-8")


def make_archive(zip_path: Path, pages: Dict[str, bytes]) -> Path:
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(zip_path, "w") as zf:
        for name, content in pages.items():
            zf.writestr(name, content)
    return zip_path


def make_book_pages(count: int, prefix: str = "P") -> Dict[str, bytes]:
    return {
        f"page-{i:03d}-chapter-1.html": make_page_html(f"{prefix}{i:03d}")
        for i in range(1, count + 1)
    }


def make_pdf(path: Path, pages: int = 3, text: str = "page") -> Path:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 72), f"{text} {i + 1}")
    doc.save(str(path))
    doc.close()
    return path


def pdf_page_texts(path: Path) -> List[str]:
    with fitz.open(str(path)) as doc:
        return [page.get_text().strip() for page in doc]


# ============================================================================
# Fakes
# ============================================================================

class FakeRenderer(PageRenderer):
    """Writes a one-page PDF whose text is the document's data-marker."""

    def __init__(self, delay: float = 0.0, fail_markers=(), crash_after: Optional[int] = None):
        self.delay = delay
        self.fail_markers = set(fail_markers)
        self.crash_after = crash_after
        self.started = False
        self.closed = False
        self.rendered = 0
        self.resets = 0
        self.dimensions: List[PageDimensions] = []

    def start(self):
        self.started = True

    def render(self, content: bytes, dims: PageDimensions) -> bytes:
        if self.crash_after is not None and self.rendered >= self.crash_after:
            raise RendererCrashedError("browser went away")

        match = MARKER_PATTERN.search(content)
        marker = match.group(1).decode() if match else "none"
        if marker in self.fail_markers:
            raise PageRenderError(f"cannot render {marker}")

        if self.delay:
            time.sleep(random.uniform(0, self.delay))

        self.dimensions.append(dims)
        doc = fitz.open()
        page = doc.new_page(width=dims.width_mm * MM_TO_PT, height=dims.height_mm * MM_TO_PT)
        page.insert_text((20, 40), marker)
        data = doc.tobytes()
        doc.close()

        self.rendered += 1
        return data

    def reset(self):
        self.resets += 1

    def close(self):
        self.closed = True


class RendererFactory:
    """Counts renderer creations; each call hands out a fresh FakeRenderer."""

    def __init__(self, **renderer_kwargs):
        self.renderer_kwargs = renderer_kwargs
        self.renderers: List[FakeRenderer] = []
        self._lock = threading.Lock()

    def __call__(self) -> FakeRenderer:
        renderer = FakeRenderer(**self.renderer_kwargs)
        with self._lock:
            self.renderers.append(renderer)
        return renderer

    @property
    def calls(self) -> int:
        return len(self.renderers)

    @property
    def pages_rendered(self) -> int:
        return sum(r.rendered for r in self.renderers)


class FakeOCRService(OCRService):
    """Copies the input PDF and replays ocrmypdf-like output lines."""

    DEFAULT_LINES = [
        "Scanning contents: 100%",
        "    1 page already has text! - rasterizing text and running OCR anyway",
        "Start processing 3 pages concurrently",
        "Processing page 1",
        "Processing page 2",
        "WARNING - page 2: lots of diacritics - possibly poor OCR",
        "Postprocessing...",
        "Output file is a PDF/A-2B (as expected)",
    ]

    def __init__(self, lines=None, exit_code: int = 0, create_output: bool = True, line_delay: float = 0.0):
        self.lines = self.DEFAULT_LINES if lines is None else lines
        self.exit_code = exit_code
        self.create_output = create_output
        self.line_delay = line_delay
        self.calls = []

    def run(self, src, dst, settings, on_line):
        self.calls.append((Path(src), Path(dst), settings))
        for line in self.lines:
            if self.line_delay:
                time.sleep(self.line_delay)
            on_line(line + "\n")
        if self.create_output and self.exit_code == 0:
            shutil.copyfile(src, dst)
        return self.exit_code


class FakeCompressionService(RecompressionService):
    """Writes a smaller copy of the input; fails for names in fail_names."""

    def __init__(self, fail_names=(), exit_code: int = 1, delay: float = 0.0):
        self.fail_names = set(fail_names)
        self.exit_code = exit_code
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def run(self, src, dst, settings):
        with self._lock:
            self.calls.append(Path(src).name)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if Path(src).name in self.fail_names:
                return self.exit_code
            data = Path(src).read_bytes()
            Path(dst).write_bytes(data[:max(1, len(data) // 2)])
            return 0
        finally:
            with self._lock:
                self.active -= 1



class FlakyCompressionService(FakeCompressionService):
    """Leaves a truncated file behind and exits non-zero for the first `failures` calls."""

    def __init__(self, failures: int = 1, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures

    def run(self, src, dst, settings):
        if self.failures > 0:
            self.failures -= 1
            self.calls.append(Path(src).name)
            Path(dst).write_bytes(b"%PDF-1.4 truncated")
            return 1
        return super().run(src, dst, settings)


class RaisingCompressionService(FakeCompressionService):
    """Raises `error` for names in raise_names instead of returning an exit code."""

    def __init__(self, raise_names=(), error: Exception = ValueError("embedded null byte"), **kwargs):
        super().__init__(**kwargs)
        self.raise_names = set(raise_names)
        self.error = error

    def run(self, src, dst, settings):
        if Path(src).name in self.raise_names:
            self.calls.append(Path(src).name)
            raise self.error
        return super().run(src, dst, settings)
