"""
Batch runner: every archive in input_dir through pdf -> ocr -> (llm).

Archives run one after another. Each stage is skipped when its Job Record
flag is set AND its output file still exists; a set flag whose file has
gone missing is treated as not done and the stage runs again. Every state
change is persisted before the runner moves on, so an interrupted batch
resumes from the last completed stage.
"""

import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from infra.config import BinderConfig
from infra.pipeline.logger import PipelineLogger
from infra.pipeline.schemas import BatchReport, BatchSummary, CompressionResult, STAGES
from infra.pipeline.storage.metrics import MetricsManager
from infra.pipeline.storage.progress_store import ProgressStore, now_iso
from infra.pipeline.rich_progress import is_headless
from pipeline.compress import (
    RecompressionService,
    GhostscriptService,
    compress_batch,
    compress_file,
    compress_sequential,
    find_pending,
)
from pipeline.ocr import OCRService, OcrmypdfService, OcrEvent, run_ocr_stage
from pipeline.pages import deduplicate, extract_archive
from pipeline.render import PageRenderer, merge_pdfs, playwright_renderer_factory, render_pages

SUCCEEDED = "succeeded"
SKIPPED = "skipped"


@dataclass
class PipelineServices:
    """External tools used by the stages."""
    renderer_factory: Callable[[], PageRenderer]
    ocr: OCRService
    compression: RecompressionService

    @classmethod
    def default(cls, config: BinderConfig) -> "PipelineServices":
        return cls(
            renderer_factory=playwright_renderer_factory(config.render),
            ocr=OcrmypdfService(),
            compression=GhostscriptService(),
        )


def archive_base(zip_path: Path) -> str:
    return Path(zip_path).stem


class BatchRunner:

    def __init__(
        self,
        config: BinderConfig,
        store: ProgressStore,
        services: PipelineServices,
        logger: PipelineLogger,
        workers: Optional[int] = None,
        show_progress: Optional[bool] = None,
    ):
        self.config = config
        self.store = store
        self.services = services
        self.logger = logger
        self.workers = workers
        self.show_progress = not is_headless() if show_progress is None else show_progress
        self.generate_llm = False
        self.metrics = MetricsManager(config.metrics_file)

    def discover_archives(self) -> List[Path]:
        input_dir = self.config.input_dir
        if not input_dir.is_dir():
            return []
        return sorted(
            (p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() == ".zip"),
            key=lambda p: p.name,
        )

    def outputs_for(self, base: str) -> Dict[str, Path]:
        output_dir = self.config.output_dir
        return {
            "pdf": output_dir / f"{base}.pdf",
            "ocr": output_dir / f"{base}-ocr.pdf",
            "llm": output_dir / f"{base}-llm.pdf",
        }

    def _complete_stages(self, name: str, outputs: Dict[str, Path]) -> Dict[str, bool]:
        return {
            stage: self.store.is_stage_complete(name, stage, outputs[stage])
            for stage in STAGES
        }

    def process_archive(self, zip_path: Path, generate_llm: Optional[bool] = None) -> str:
        """
        Run the missing stages for one archive.

        Returns "succeeded" or "skipped". On failure the record is marked
        failed and the exception propagates.
        """
        if generate_llm is None:
            generate_llm = self.generate_llm

        zip_path = Path(zip_path)
        name = zip_path.name
        base = archive_base(zip_path)
        outputs = self.outputs_for(base)
        complete = self._complete_stages(name, outputs)

        required = ["pdf", "ocr"] + (["llm"] if generate_llm else [])
        if all(complete[stage] for stage in required):
            self.logger.info(f"Skipping {name}: all stages complete", archive=base)
            return SKIPPED

        if complete["pdf"] and complete["ocr"]:
            # Only llm is missing: the compression pass after the batch handles it
            self.logger.info(f"Skipping {name}: llm version left to the compression pass", archive=base)
            return SKIPPED

        # Flags whose files disappeared are cleared so they can't be trusted later
        stale = {stage: False for stage in STAGES if not complete[stage]}
        self.store.update(
            name,
            status="processing",
            started_at=now_iso(),
            error=None,
            **stale,
        )

        workspace = self.config.temp_dir / base
        if workspace.exists():
            shutil.rmtree(workspace)
        workspace.mkdir(parents=True)

        try:
            if not complete["pdf"]:
                print(f"   📄 [{base}] Creating PDF...")
                self._run_pdf_stage(zip_path, workspace, outputs["pdf"])
            else:
                print(f"   ✓ [{base}] PDF already exists")

            if not complete["ocr"]:
                print(f"   🔍 [{base}] Running OCR...")
                self._run_ocr_stage(name, outputs["pdf"], outputs["ocr"])
            else:
                print(f"   ✓ [{base}] OCR PDF already exists")

            if generate_llm and not complete["llm"]:
                print(f"   🗜️  [{base}] Creating LLM-friendly PDF...")
                self._run_llm_stage(name, outputs["ocr"], outputs["llm"])

            self.store.update(name, status="completed", completed_at=now_iso())
            return SUCCEEDED

        except Exception as e:
            self.store.update(name, status="failed", error=str(e), failed_at=now_iso())
            self.logger.error(f"Failed to process {name}", archive=base, error=str(e))
            raise

        finally:
            shutil.rmtree(workspace, ignore_errors=True)

    def _run_pdf_stage(self, zip_path: Path, workspace: Path, output_pdf: Path):
        name = zip_path.name
        base = archive_base(zip_path)
        logger = self.logger.for_stage("pdf", archive=base)
        start_time = time.time()

        try:
            documents = extract_archive(zip_path, workspace)
            dedup = deduplicate(documents)
            if dedup.duplicates:
                logger.info(
                    f"Removed {len(dedup.duplicates)} duplicate pages "
                    f"({len(dedup.units)} unique of {len(documents)})"
                )

            rendered = render_pages(
                dedup.units,
                workspace / "rendered",
                self.services.renderer_factory,
                workers=self.workers,
                settings=self.config.render,
                show_progress=self.show_progress,
            )
            if rendered.dropped:
                logger.warning(
                    f"Dropped {len(rendered.dropped)} pages that failed to render",
                    error="; ".join(f"page {o}: {r}" for o, r in rendered.dropped[:20]),
                )

            page_count = merge_pdfs(rendered.artifacts, output_pdf, chunk_size=self.config.merge.chunk_size)
            self.store.mark_stage_complete(name, "pdf", output_pdf)

            elapsed = time.time() - start_time
            self.metrics.record(
                base, "pdf",
                time_seconds=elapsed,
                documents=len(documents),
                unique_pages=len(dedup.units),
                duplicates=len(dedup.duplicates),
                dropped_pages=len(rendered.dropped),
                page_count=page_count,
                render_workers=rendered.workers,
                output_size=output_pdf.stat().st_size,
            )
            logger.info(
                f"Created {output_pdf.name} ({page_count} pages)",
                duration_seconds=round(elapsed, 2),
            )
        except Exception as e:
            logger.error("PDF stage failed", error=str(e))
            raise
        finally:
            logger.close()

    def _run_ocr_stage(self, name: str, input_pdf: Path, output_pdf: Path):
        base = archive_base(Path(name))
        logger = self.logger.for_stage("ocr", archive=base)

        try:
            result = run_ocr_stage(
                input_pdf,
                output_pdf,
                self.services.ocr,
                self.config.ocr,
                logger,
                on_event=self._print_ocr_event,
            )
            self.store.mark_stage_complete(name, "ocr", output_pdf)
            self.metrics.record(
                base, "ocr",
                time_seconds=result.duration_seconds,
                pages_seen=result.pages_seen,
                input_size=input_pdf.stat().st_size,
                output_size=output_pdf.stat().st_size,
            )
        except Exception as e:
            logger.error("OCR stage failed", error=str(e))
            raise
        finally:
            logger.close()

    def _print_ocr_event(self, event: OcrEvent):
        if event.kind == "heartbeat":
            print(f"      ⏳ {event.describe()}")
        elif event.kind == "finalizing" and self.show_progress:
            print(f"      📦 {event.line.strip()}")

    def _run_llm_stage(self, name: str, input_pdf: Path, output_pdf: Path):
        base = archive_base(Path(name))
        logger = self.logger.for_stage("llm", archive=base)

        try:
            result = compress_file(self.services.compression, input_pdf, output_pdf, self.config.compression)
            self._record_compression(name, result)
            logger.info(
                f"Created {output_pdf.name} ({result.ratio}x smaller)",
                duration_seconds=result.duration_seconds,
            )
        except Exception as e:
            logger.error("LLM stage failed", error=str(e))
            raise
        finally:
            logger.close()

    def _record_compression(self, name: str, result: CompressionResult):
        record = self.store.mark_stage_complete(name, "llm", Path(result.output_path))
        if record.status == "failed" and record.pdf and record.ocr:
            # A later compression pass finished what the failed run left
            self.store.update(name, status="completed", error=None, completed_at=now_iso())
        self.metrics.record(
            archive_base(Path(name)), "llm",
            time_seconds=result.duration_seconds,
            input_size=result.input_size,
            output_size=result.output_size,
            ratio=result.ratio,
        )

    def compress_pending(self) -> Optional[BatchSummary]:
        """Second pass: recompress every OCR PDF in output_dir still missing its llm version."""
        pairs = find_pending(self.config.output_dir)
        if not pairs:
            self.logger.info("No OCR PDFs pending compression")
            return None

        known = {archive_base(Path(name)): name for name, _ in self.store.items()}

        def on_result(src: Path, result: Optional[CompressionResult], error: Optional[str]):
            base = src.name[:-len("-ocr.pdf")]
            if result is None or base not in known:
                return
            self._record_compression(known[base], result)

        settings = self.config.compression
        if len(pairs) >= settings.parallel_threshold:
            self.logger.info(f"Compressing {len(pairs)} OCR PDFs in parallel batches")
            summary = compress_batch(pairs, self.services.compression, settings, on_result=on_result)
        else:
            self.logger.info(f"Compressing {len(pairs)} OCR PDFs sequentially")
            summary = compress_sequential(pairs, self.services.compression, settings, on_result=on_result)

        for src, error in summary.failed:
            self.logger.error(f"Compression failed for {Path(src).name}", error=error)

        return summary

    def run(self, generate_llm: bool = False) -> BatchReport:
        self.generate_llm = generate_llm
        report = BatchReport()

        archives = self.discover_archives()
        self.logger.info(f"Found {len(archives)} archive(s) in {self.config.input_dir}")

        for i, zip_path in enumerate(archives, 1):
            print(f"\n[{i}/{len(archives)}] 📦 {zip_path.name}")
            try:
                outcome = self.process_archive(zip_path, generate_llm)
            except Exception as e:
                print(f"   ❌ Failed: {e}")
                report.failed.append((zip_path.name, str(e)))
                continue

            if outcome == SKIPPED:
                print("   ⏭️  Skipped (already processed)")
                report.skipped.append(zip_path.name)
            else:
                print("   ✅ Complete")
                report.succeeded.append(zip_path.name)

        if generate_llm:
            report.compression = self.compress_pending()

        self.logger.info(
            f"Batch complete: {len(report.succeeded)} succeeded, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report
