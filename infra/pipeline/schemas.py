from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, Field


JobStatus = Literal["pending", "processing", "completed", "failed"]

STAGES = ("pdf", "ocr", "llm")


class JobRecord(BaseModel):
    """Persisted pipeline progress for one input archive."""
    status: JobStatus = Field("pending", description="Overall archive status")

    pdf: bool = Field(False, description="Merged PDF confirmed on disk")
    ocr: bool = Field(False, description="OCR PDF confirmed on disk")
    llm: bool = Field(False, description="Compressed PDF confirmed on disk")

    started_at: Optional[str] = Field(None, description="Last transition to processing")
    pdf_created_at: Optional[str] = None
    ocr_created_at: Optional[str] = None
    llm_created_at: Optional[str] = None
    completed_at: Optional[str] = None
    failed_at: Optional[str] = None

    error: Optional[str] = Field(None, description="Message of the last failure")


class CompressionResult(BaseModel):
    input_path: str = Field(..., description="OCR PDF that was compressed")
    output_path: str = Field(..., description="Compressed PDF written")
    input_size: int = Field(..., ge=0, description="Bytes before")
    output_size: int = Field(..., ge=0, description="Bytes after")
    ratio: float = Field(..., ge=0.0, description="input_size / output_size")
    duration_seconds: float = Field(..., ge=0.0)


class BatchSummary(BaseModel):
    mode: Literal["parallel", "sequential"] = "parallel"
    results: List[CompressionResult] = Field(default_factory=list)
    failed: List[Tuple[str, str]] = Field(default_factory=list, description="(input file, error)")
    skipped: List[str] = Field(default_factory=list, description="Inputs whose output already existed")
    total_time_seconds: float = 0.0

    @property
    def mean_ratio(self) -> float:
        if not self.results:
            return 0.0
        return sum(r.ratio for r in self.results) / len(self.results)

    @property
    def total_input_size(self) -> int:
        return sum(r.input_size for r in self.results)

    @property
    def total_output_size(self) -> int:
        return sum(r.output_size for r in self.results)

    @property
    def bytes_saved(self) -> int:
        return self.total_input_size - self.total_output_size

    @property
    def files_per_second(self) -> float:
        if self.total_time_seconds <= 0:
            return 0.0
        return len(self.results) / self.total_time_seconds


class BatchReport(BaseModel):
    succeeded: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[Tuple[str, str]] = Field(default_factory=list, description="(archive, error)")
    compression: Optional[BatchSummary] = None
