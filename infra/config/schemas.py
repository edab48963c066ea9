"""
Configuration schemas for bookbinder.

Defines the structure of the batch configuration file.
All config is stored in {root}/config.yaml (root = BOOKBINDER_ROOT).
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class RenderSettings(BaseModel):
    """Page rendering (HTML page document -> one-page PDF)."""
    page_width_mm: float = Field(210.0, gt=0, description="Fixed page width (A4 width)")
    default_height_mm: float = Field(297.0, gt=0, description="Fallback height when the image has no dimensions")
    viewport_width: int = Field(794, gt=0, description="Browser viewport width (210mm at 96dpi)")
    viewport_height: int = Field(1123, gt=0, description="Browser viewport height (297mm at 96dpi)")
    content_timeout_ms: int = Field(10000, gt=0, description="Timeout for loading one page document")
    launch_timeout_ms: int = Field(30000, gt=0, description="Timeout for launching a browser")
    workers: Optional[int] = Field(None, ge=1, description="Parallel renderers (default: cpu_count - 1)")


class MergeSettings(BaseModel):
    chunk_size: int = Field(100, ge=1, description="Page PDFs opened per merge chunk")


class OCRSettings(BaseModel):
    """Settings passed to the OCR service (ocrmypdf)."""
    force_ocr: bool = Field(True, description="Re-OCR pages even if they already have text")
    jobs: int = Field(8, ge=1, description="Parallel jobs inside the OCR service")
    page_timeout_seconds: int = Field(180, ge=0, description="Per-page OCR timeout")
    pdf_renderer: str = Field("sandwich", description="OCR PDF renderer (fast mode)")
    optimize: int = Field(0, ge=0, le=3, description="Output optimization level (0 = skip for speed)")
    rotate_pages: bool = Field(True, description="Detect and fix page rotation")
    max_pages: Optional[int] = Field(None, ge=1, description="Only OCR the first N pages (test runs)")
    heartbeat_seconds: float = Field(30.0, gt=0, description="Quiet period before a heartbeat is emitted")


class CompressionSettings(BaseModel):
    """Settings for the LLM-friendly recompression (Ghostscript)."""
    dpi: int = Field(96, ge=1, description="Color/gray image resolution")
    quality: int = Field(60, ge=1, le=100, description="JPEG quality")
    workers: Optional[int] = Field(None, ge=1, description="Parallel files (default: cpu_count - 2)")
    parallel_threshold: int = Field(3, ge=1, description="Pending files needed for the parallel batch path")

    @property
    def mono_dpi(self) -> int:
        return self.dpi * 2


class BinderConfig(BaseModel):
    """
    Batch configuration.

    Stored at: {root}/config.yaml
    Relative paths are resolved against root.
    """
    root: Path = Field(default_factory=Path.cwd, description="Working root directory")
    input_dir: Path = Field(Path("input"), description="Directory scanned for .zip archives")
    output_dir: Path = Field(Path("."), description="Directory receiving the PDFs")
    temp_dir: Path = Field(Path(".temp"), description="Per-archive extraction workspaces")
    progress_file: Path = Field(Path(".batch-progress.json"), description="Persisted job records")
    log_dir: Path = Field(Path("logs"), description="JSONL stage logs")

    render: RenderSettings = Field(default_factory=RenderSettings)
    merge: MergeSettings = Field(default_factory=MergeSettings)
    ocr: OCRSettings = Field(default_factory=OCRSettings)
    compression: CompressionSettings = Field(default_factory=CompressionSettings)

    @field_validator('root')
    @classmethod
    def validate_root(cls, v: Path) -> Path:
        return Path(v).expanduser().resolve()

    @model_validator(mode="after")
    def resolve_paths(self) -> "BinderConfig":
        for name in ('input_dir', 'output_dir', 'temp_dir', 'progress_file', 'log_dir'):
            value = Path(getattr(self, name)).expanduser()
            if not value.is_absolute():
                value = self.root / value
            setattr(self, name, value.resolve())
        return self

    @property
    def metrics_file(self) -> Path:
        return self.output_dir / ".bookbinder-metrics.json"
