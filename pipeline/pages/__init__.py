from .schemas import PageDocument, RenderUnit, DedupResult
from .dedupe import deduplicate, content_hash
from .archive import extract_archive, load_page_documents, parse_label

__all__ = [
    "PageDocument",
    "RenderUnit",
    "DedupResult",
    "deduplicate",
    "content_hash",
    "extract_archive",
    "load_page_documents",
    "parse_label",
]
