"""
Tests for infra/pipeline/runner.py

End-to-end batch runs against fake renderer, OCR and compression services
writing real PDFs under tmp_path.
"""

import pytest

from infra.pipeline.runner import BatchRunner, PipelineServices
from infra.pipeline.storage import ProgressStore
from tests.fakes import (
    FakeCompressionService,
    FlakyCompressionService,
    FakeOCRService,
    RendererFactory,
    make_archive,
    make_book_pages,
    make_page_html,
    make_pdf,
    pdf_page_texts,
)


def _archive(config, name, pages):
    return make_archive(config.input_dir / name, pages)


class TestDiscoverArchives:

    def test_sorted_case_insensitive_zip(self, runner, config):
        for name in ["b.zip", "a.ZIP", "notes.txt", "c.zip"]:
            (config.input_dir / name).write_bytes(b"x")

        assert [p.name for p in runner.discover_archives()] == ["a.ZIP", "b.zip", "c.zip"]

    def test_missing_input_dir(self, runner, config):
        config.input_dir.rmdir()

        assert runner.discover_archives() == []


class TestProcessArchive:

    def test_book_without_llm(self, runner, config, store):
        _archive(config, "bookA.zip", make_book_pages(4))

        report = runner.run(generate_llm=False)

        assert report.succeeded == ["bookA.zip"]
        assert (config.output_dir / "bookA.pdf").exists()
        assert (config.output_dir / "bookA-ocr.pdf").exists()
        assert not (config.output_dir / "bookA-llm.pdf").exists()

        record = store.get("bookA.zip")
        assert record.status == "completed"
        assert (record.pdf, record.ocr, record.llm) == (True, True, False)
        assert record.completed_at is not None
        assert report.compression is None

    def test_duplicates_removed_in_order(self, runner, config):
        markers = ["A", "B", "A", "C", "D", "B", "E", "F", "D", "G"]
        pages = {
            f"page-{i:03d}-ch.html": make_page_html(marker)
            for i, marker in enumerate(markers, start=1)
        }
        _archive(config, "dupes.zip", pages)

        runner.run()

        assert pdf_page_texts(config.output_dir / "dupes.pdf") == ["A", "B", "C", "D", "E", "F", "G"]

    def test_workspace_removed(self, runner, config):
        _archive(config, "bookA.zip", make_book_pages(2))

        runner.run()

        assert not (config.temp_dir / "bookA").exists()

    def test_completed_archive_is_skipped(self, runner, config, renderer_factory):
        _archive(config, "bookA.zip", make_book_pages(2))
        runner.run()
        calls = renderer_factory.calls

        report = runner.run()

        assert report.skipped == ["bookA.zip"]
        assert renderer_factory.calls == calls

    def test_resume_skips_render_when_pdf_complete(self, runner, config, store, renderer_factory, services):
        _archive(config, "bookA.zip", make_book_pages(3))
        pdf = make_pdf(config.output_dir / "bookA.pdf", pages=3)
        store.mark_stage_complete("bookA.zip", "pdf", pdf)

        report = runner.run()

        assert report.succeeded == ["bookA.zip"]
        assert renderer_factory.calls == 0
        assert len(services.ocr.calls) == 1
        assert store.get("bookA.zip").ocr is True

    def test_stale_pdf_flag_rerenders(self, runner, config, store, renderer_factory):
        _archive(config, "bookA.zip", make_book_pages(3))
        pdf = make_pdf(config.output_dir / "bookA.pdf", pages=1)
        store.mark_stage_complete("bookA.zip", "pdf", pdf)
        pdf.unlink()

        runner.run()

        assert renderer_factory.calls > 0
        assert len(pdf_page_texts(config.output_dir / "bookA.pdf")) == 3
        assert store.get("bookA.zip").pdf is True

    def test_failure_isolated_between_archives(self, runner, config, store):
        (config.input_dir / "broken.zip").write_bytes(b"not a zip")
        _archive(config, "good.zip", make_book_pages(2))

        report = runner.run()

        assert report.succeeded == ["good.zip"]
        assert [name for name, _ in report.failed] == ["broken.zip"]

        failed = store.get("broken.zip")
        assert failed.status == "failed"
        assert failed.error
        assert failed.failed_at is not None
        assert store.get("good.zip").status == "completed"

    def test_failure_reraised_from_process_archive(self, runner, config, store):
        zip_path = config.input_dir / "broken.zip"
        zip_path.write_bytes(b"not a zip")

        with pytest.raises(Exception):
            runner.process_archive(zip_path)

        assert store.get("broken.zip").status == "failed"
        assert not (config.temp_dir / "broken").exists()

    def test_ocr_failure_keeps_pdf_flag(self, config, store, batch_logger, renderer_factory):
        config.input_dir.mkdir(parents=True, exist_ok=True)
        _archive(config, "bookA.zip", make_book_pages(2))
        services = PipelineServices(renderer_factory, FakeOCRService(exit_code=1), FakeCompressionService())
        runner = BatchRunner(config, store, services, batch_logger, show_progress=False)

        report = runner.run()

        record = store.get("bookA.zip")
        assert report.failed[0][0] == "bookA.zip"
        assert record.status == "failed"
        assert record.pdf is True
        assert record.ocr is False

    def test_all_pages_fail_to_render(self, config, store, batch_logger):
        config.input_dir.mkdir(parents=True, exist_ok=True)
        _archive(config, "bookA.zip", {"page-001-a.html": make_page_html("X")})
        services = PipelineServices(
            RendererFactory(fail_markers={"X"}),
            FakeOCRService(),
            FakeCompressionService(),
        )
        runner = BatchRunner(config, store, services, batch_logger, show_progress=False)

        report = runner.run()

        assert report.failed[0][0] == "bookA.zip"
        assert not (config.output_dir / "bookA.pdf").exists()

    def test_stage_metrics_recorded(self, runner, config):
        _archive(config, "bookA.zip", make_book_pages(2))

        runner.run()

        assert runner.metrics.get("bookA", "pdf")["page_count"] == 2
        assert runner.metrics.get("bookA", "ocr")["pages_seen"] > 0

    def test_processing_status_persisted_before_stages(self, config, store, batch_logger):
        _archive(config, "bookA.zip", make_book_pages(2))
        seen = []
        factory = RendererFactory()

        def reloading_factory():
            seen.append(ProgressStore(config.progress_file).load().get("bookA.zip"))
            return factory()

        services = PipelineServices(reloading_factory, FakeOCRService(), FakeCompressionService())
        runner = BatchRunner(config, store, services, batch_logger, workers=1, show_progress=False)

        runner.run()

        assert seen
        assert seen[0].status == "processing"
        assert seen[0].started_at is not None
        assert seen[0].pdf is False
        assert store.get("bookA.zip").status == "completed"


class TestLlmStage:

    def test_llm_created_in_archive_run(self, runner, config, store):
        _archive(config, "bookA.zip", make_book_pages(2))

        report = runner.run(generate_llm=True)

        assert report.succeeded == ["bookA.zip"]
        assert (config.output_dir / "bookA-llm.pdf").exists()
        assert store.get("bookA.zip").llm is True

    def test_only_llm_missing_is_skipped_and_compressed_after(self, runner, config, store):
        _archive(config, "bookA.zip", make_book_pages(2))
        runner.run(generate_llm=False)

        report = runner.run(generate_llm=True)

        assert report.skipped == ["bookA.zip"]
        assert report.compression.mode == "sequential"
        assert len(report.compression.results) == 1
        assert store.get("bookA.zip").llm is True
        assert store.get("bookA.zip").llm_created_at is not None

    def test_five_ocr_pdfs_use_parallel_path(self, runner, config, store):
        for i in range(1, 6):
            make_pdf(config.output_dir / f"book{i}-ocr.pdf", pages=2)

        report = runner.run(generate_llm=True)

        summary = report.compression
        assert summary.mode == "parallel"
        assert len(summary.results) == 5
        for i in range(1, 6):
            assert (config.output_dir / f"book{i}-llm.pdf").exists()
        for result in summary.results:
            assert result.output_size <= result.input_size
        # Not produced by any known archive
        assert list(store.items()) == []

    def test_failed_compression_retried_on_next_run(self, config, store, batch_logger, renderer_factory):
        _archive(config, "bookA.zip", make_book_pages(2))
        # Fails inside the archive run and again in the compression pass
        compression = FlakyCompressionService(failures=2)
        services = PipelineServices(renderer_factory, FakeOCRService(), compression)
        runner = BatchRunner(config, store, services, batch_logger, workers=2, show_progress=False)

        first = runner.run(generate_llm=True)

        assert [name for name, _ in first.failed] == ["bookA.zip"]
        assert not (config.output_dir / "bookA-llm.pdf").exists()
        assert not [p.name for p in config.output_dir.iterdir() if p.name.endswith(".tmp")]
        assert store.get("bookA.zip").llm is False

        second = runner.run(generate_llm=True)

        assert second.skipped == ["bookA.zip"]
        assert len(second.compression.results) == 1
        assert (config.output_dir / "bookA-llm.pdf").exists()
        record = store.get("bookA.zip")
        assert record.llm is True
        assert record.status == "completed"
        assert record.error is None
