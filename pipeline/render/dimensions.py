"""
Page dimensions from the embedded page image.

Width is fixed at A4 width (210mm); height follows the image aspect ratio.
Documents without a readable image fall back to A4 portrait.
"""

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210.0
DEFAULT_HEIGHT_MM = 297.0

IMG_SRC_PATTERN = re.compile(rb'<img\b[^>]*?\bsrc\s*=\s*(["\'])(.*?)\1', re.IGNORECASE | re.DOTALL)
DATA_URI_PATTERN = re.compile(r'^data:[^;,]*(;base64)?,(.*)$', re.DOTALL)


@dataclass(frozen=True)
class PageDimensions:
    width_mm: float = PAGE_WIDTH_MM
    height_mm: float = DEFAULT_HEIGHT_MM

    @property
    def width(self) -> str:
        return f"{self.width_mm}mm"

    @property
    def height(self) -> str:
        return f"{self.height_mm}mm"


def find_image_source(content: bytes) -> Optional[str]:
    match = IMG_SRC_PATTERN.search(content)
    if not match:
        return None
    return match.group(2).decode('utf-8', errors='replace').strip()


def _load_image_bytes(src: str, base_dir: Optional[Path]) -> Optional[bytes]:
    data_match = DATA_URI_PATTERN.match(src)
    if data_match:
        is_base64, payload = data_match.groups()
        if is_base64:
            return base64.b64decode(payload, validate=False)
        return unquote(payload).encode('latin-1')

    if base_dir is None or '://' in src:
        return None

    path = Path(base_dir) / unquote(src)
    if not path.is_file():
        return None
    return path.read_bytes()


def image_size(content: bytes, base_dir: Optional[Path] = None) -> Optional[Tuple[int, int]]:
    """(width, height) in pixels of the first <img> in a page document, if readable."""
    src = find_image_source(content)
    if not src:
        return None

    try:
        data = _load_image_bytes(src, base_dir)
        if not data:
            return None
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, binascii.Error, ValueError, OSError) as e:
        logger.debug(f"Unreadable page image: {e}")
        return None


def resolve_dimensions(
    content: bytes,
    base_dir: Optional[Path] = None,
    page_width_mm: float = PAGE_WIDTH_MM,
    default_height_mm: float = DEFAULT_HEIGHT_MM,
) -> PageDimensions:
    size = image_size(content, base_dir)
    if not size or size[0] <= 0 or size[1] <= 0:
        return PageDimensions(page_width_mm, default_height_mm)

    width, height = size
    return PageDimensions(page_width_mm, page_width_mm * (height / width))
