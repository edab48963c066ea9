from infra.pipeline.storage.metrics import MetricsManager
from infra.pipeline.storage.progress_store import ProgressStore, now_iso

__all__ = [
    "MetricsManager",
    "ProgressStore",
    "now_iso",
]
