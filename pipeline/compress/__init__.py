from .service import RecompressionService, GhostscriptService, find_ghostscript
from .batch import (
    compress_file,
    compress_batch,
    compress_sequential,
    find_pending,
    llm_output_for,
    default_workers,
)

__all__ = [
    "RecompressionService",
    "GhostscriptService",
    "find_ghostscript",
    "compress_file",
    "compress_batch",
    "compress_sequential",
    "find_pending",
    "llm_output_for",
    "default_workers",
]
