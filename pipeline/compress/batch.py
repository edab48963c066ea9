"""
Recompression of OCR PDFs into small LLM-friendly PDFs.

Batches of at most W files run concurrently (W = cpu_count - 2, leaving
room for the OCR and render stages of a concurrent run). The next batch
starts only after every file of the current one has finished. A failing
file is recorded and never aborts its siblings.
"""

import logging
import multiprocessing
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from infra.config import CompressionSettings
from infra.pipeline.schemas import BatchSummary, CompressionResult
from pipeline.errors import CompressionError
from .service import RecompressionService

logger = logging.getLogger(__name__)

OCR_SUFFIX = "-ocr.pdf"
LLM_SUFFIX = "-llm.pdf"

FilePair = Tuple[Path, Path]
ResultCallback = Callable[[Path, Optional[CompressionResult], Optional[str]], None]


def llm_output_for(ocr_pdf: Path) -> Path:
    ocr_pdf = Path(ocr_pdf)
    base = ocr_pdf.name[:-len(OCR_SUFFIX)]
    return ocr_pdf.with_name(f"{base}{LLM_SUFFIX}")


def find_pending(directory: Path) -> List[FilePair]:
    """*-ocr.pdf files (no dotfiles) whose *-llm.pdf sibling does not exist yet."""
    directory = Path(directory)
    if not directory.is_dir():
        return []

    pairs = []
    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if path.name.startswith('.') or not path.is_file():
            continue
        if not path.name.lower().endswith(OCR_SUFFIX):
            continue
        output = llm_output_for(path)
        if output.exists():
            continue
        pairs.append((path, output))
    return pairs


def default_workers() -> int:
    return max(1, multiprocessing.cpu_count() - 2)


def compress_file(
    service: RecompressionService,
    src: Path,
    dst: Path,
    settings: CompressionSettings,
) -> CompressionResult:
    src = Path(src)
    dst = Path(dst)
    # The service writes a hidden sibling; dst only ever appears complete
    temp_dst = dst.with_name(f".{dst.name}.tmp")
    start_time = time.time()

    try:
        try:
            exit_code = service.run(src, temp_dst, settings)
        except OSError as e:
            raise CompressionError(f"Failed to start {service.name}: {e}") from e
        except Exception as e:
            raise CompressionError(f"{service.name} failed on {src.name}: {e}") from e

        if exit_code != 0:
            raise CompressionError(f"{service.name} failed with code {exit_code}", exit_code=exit_code)
        if not temp_dst.exists():
            raise CompressionError(f"{service.name} did not create {dst.name}", exit_code=exit_code)

        temp_dst.replace(dst)
    finally:
        temp_dst.unlink(missing_ok=True)

    input_size = src.stat().st_size
    output_size = dst.stat().st_size
    ratio = input_size / output_size if output_size > 0 else 0.0

    return CompressionResult(
        input_path=str(src),
        output_path=str(dst),
        input_size=input_size,
        output_size=output_size,
        ratio=round(ratio, 1),
        duration_seconds=round(time.time() - start_time, 1),
    )


def _split_existing(pairs: List[FilePair], summary: BatchSummary) -> List[FilePair]:
    todo = []
    for src, dst in pairs:
        if Path(dst).exists():
            summary.skipped.append(str(src))
        else:
            todo.append((Path(src), Path(dst)))
    return todo


def _record(
    summary: BatchSummary,
    src: Path,
    result: Optional[CompressionResult],
    error: Optional[str],
    on_result: Optional[ResultCallback],
):
    if result is not None:
        summary.results.append(result)
        size_mb = result.output_size / (1024 * 1024)
        logger.info(f"{Path(result.output_path).name} ({size_mb:.2f} MB, {result.ratio}x smaller, {result.duration_seconds}s)")
    else:
        summary.failed.append((str(src), error))
        logger.error(f"{src.name}: {error}")

    if on_result:
        on_result(src, result, error)


def compress_batch(
    pairs: List[FilePair],
    service: RecompressionService,
    settings: CompressionSettings,
    workers: Optional[int] = None,
    on_result: Optional[ResultCallback] = None,
) -> BatchSummary:
    summary = BatchSummary(mode="parallel")
    todo = _split_existing(pairs, summary)
    if not todo:
        return summary

    num_workers = max(1, workers or settings.workers or default_workers())
    total_batches = (len(todo) + num_workers - 1) // num_workers
    start_time = time.time()

    logger.info(f"Compressing {len(todo)} PDF(s) with {num_workers} workers ({settings.dpi} DPI, quality {settings.quality})")

    for batch_num, offset in enumerate(range(0, len(todo), num_workers), start=1):
        batch = todo[offset:offset + num_workers]
        logger.info(f"Batch {batch_num}/{total_batches} ({len(batch)} files)")

        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            futures = [
                (src, executor.submit(compress_file, service, src, dst, settings))
                for src, dst in batch
            ]

            # Leaving the executor waits for the whole batch
            for src, future in futures:
                try:
                    result = future.result()
                except Exception as e:
                    _record(summary, src, None, str(e), on_result)
                else:
                    _record(summary, src, result, None, on_result)

    summary.total_time_seconds = time.time() - start_time
    return summary


def compress_sequential(
    pairs: List[FilePair],
    service: RecompressionService,
    settings: CompressionSettings,
    on_result: Optional[ResultCallback] = None,
) -> BatchSummary:
    summary = BatchSummary(mode="sequential")
    todo = _split_existing(pairs, summary)
    start_time = time.time()

    for src, dst in todo:
        try:
            result = compress_file(service, src, dst, settings)
        except Exception as e:
            _record(summary, src, None, str(e), on_result)
        else:
            _record(summary, src, result, None, on_result)

    summary.total_time_seconds = time.time() - start_time
    return summary
