from .dimensions import PageDimensions, resolve_dimensions, image_size
from .renderer import PageRenderer, PlaywrightRenderer, playwright_renderer_factory
from .pool import render_pages, worker_count
from .merge import merge_pdfs, write_split_pages
from .schemas import PageArtifact, RenderResult

__all__ = [
    "PageDimensions",
    "resolve_dimensions",
    "image_size",
    "PageRenderer",
    "PlaywrightRenderer",
    "playwright_renderer_factory",
    "render_pages",
    "worker_count",
    "merge_pdfs",
    "write_split_pages",
    "PageArtifact",
    "RenderResult",
]
