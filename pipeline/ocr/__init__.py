from .service import OCRService, OcrmypdfService
from .monitor import OcrEvent, OcrProgressMonitor, PHASE_IDLE, PHASE_PROCESSING, PHASE_FINALIZING
from .stage import run_ocr_stage, OCRStageResult

__all__ = [
    "OCRService",
    "OcrmypdfService",
    "OcrEvent",
    "OcrProgressMonitor",
    "PHASE_IDLE",
    "PHASE_PROCESSING",
    "PHASE_FINALIZING",
    "run_ocr_stage",
    "OCRStageResult",
]
