"""
OCR stage driver.

The OCR service runs on a reader thread and hands each output line to a
queue. This thread pulls from the queue with a timeout: every line goes
through the progress monitor, and a quiet period of heartbeat_seconds
produces a heartbeat event instead. Heartbeats are for visibility only;
the service is never cancelled.

The service writes into a private temp directory and the result is moved
to output_pdf only after a zero exit with the file present.
"""

import queue
import shutil
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from infra.config import OCRSettings
from infra.pipeline.logger import PipelineLogger
from pipeline.errors import OCRStageError
from .monitor import OcrEvent, OcrProgressMonitor
from .service import OCRService

EventCallback = Callable[[OcrEvent], None]

_DONE = object()


@dataclass
class OCRStageResult:
    output_path: Path
    exit_code: int
    pages_seen: int
    duration_seconds: float


def _log_event(logger: PipelineLogger, event: OcrEvent):
    if event.kind == "page":
        logger.debug(event.describe(), page=event.pages_seen, phase=event.phase)
    elif event.kind == "finalizing":
        logger.info(f"OCR finalizing: {event.line.strip()}", phase=event.phase)
    elif event.kind == "heartbeat":
        logger.info(event.describe(), phase=event.phase)
    elif "ERROR" in event.line:
        logger.error(event.line.strip(), phase=event.phase)
    elif "WARNING" in event.line:
        logger.warning(event.line.strip(), phase=event.phase)
    else:
        logger.debug(event.line.strip(), phase=event.phase)


def run_ocr_stage(
    input_pdf: Path,
    output_pdf: Path,
    service: OCRService,
    settings: OCRSettings,
    logger: PipelineLogger,
    on_event: Optional[EventCallback] = None,
) -> OCRStageResult:
    input_pdf = Path(input_pdf)
    output_pdf = Path(output_pdf)

    if not input_pdf.exists():
        raise OCRStageError(f"OCR input not found: {input_pdf}")

    output_pdf.parent.mkdir(parents=True, exist_ok=True)
    monitor = OcrProgressMonitor()
    lines: "queue.Queue" = queue.Queue()
    outcome = {}

    start_time = time.time()
    logger.info(f"Running OCR ({service.name}) on {input_pdf.name}", phase=monitor.phase)

    with tempfile.TemporaryDirectory(prefix=".ocr-", dir=output_pdf.parent) as tmp:
        temp_output = Path(tmp) / output_pdf.name

        def reader():
            try:
                outcome["exit_code"] = service.run(input_pdf, temp_output, settings, lines.put)
            except Exception as e:
                outcome["error"] = e
            finally:
                lines.put(_DONE)

        thread = threading.Thread(target=reader, name="ocr-reader", daemon=True)
        thread.start()

        last_output = time.time()
        while True:
            try:
                item = lines.get(timeout=settings.heartbeat_seconds)
            except queue.Empty:
                event = monitor.heartbeat(time.time() - last_output)
            else:
                if item is _DONE:
                    break
                last_output = time.time()
                event = monitor.feed(item)

            if event is None:
                continue
            _log_event(logger, event)
            if on_event:
                on_event(event)

        thread.join()
        duration = time.time() - start_time

        if "error" in outcome:
            error = outcome["error"]
            raise OCRStageError(f"Failed to run OCR on {input_pdf.name}: {error}") from error

        exit_code = outcome.get("exit_code", -1)
        if exit_code != 0:
            raise OCRStageError(f"OCR failed with code {exit_code} for {input_pdf.name}", exit_code=exit_code)

        if not temp_output.exists():
            raise OCRStageError(f"OCR output was not created for {input_pdf.name}", exit_code=exit_code)

        shutil.move(str(temp_output), str(output_pdf))

    size_mb = output_pdf.stat().st_size / (1024 * 1024)
    logger.info(
        f"OCR complete: {output_pdf.name} ({size_mb:.2f} MB, {monitor.pages_seen} pages seen)",
        duration_seconds=round(duration, 2),
        phase=monitor.phase,
    )

    return OCRStageResult(
        output_path=output_pdf,
        exit_code=exit_code,
        pages_seen=monitor.pages_seen,
        duration_seconds=duration,
    )
