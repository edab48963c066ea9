from infra.pipeline.logger import PipelineLogger, create_logger
from infra.pipeline.schemas import (
    JobRecord,
    CompressionResult,
    BatchSummary,
    BatchReport,
    STAGES,
)
from infra.pipeline.storage import (
    ProgressStore,
    MetricsManager,
)

# BatchRunner lives in infra.pipeline.runner (it imports the pipeline stages,
# which import this package)

__all__ = [
    # Logger
    "PipelineLogger",
    "create_logger",

    # Schemas
    "JobRecord",
    "CompressionResult",
    "BatchSummary",
    "BatchReport",
    "STAGES",

    # Storage
    "ProgressStore",
    "MetricsManager",
]
