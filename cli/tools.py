"""Standalone stage commands: pdf, ocr and compress outside a batch run."""

import sys
import tempfile
import time
from pathlib import Path

from infra.dependencies import MissingDependencyError, ensure_dependencies
from infra.pipeline.logger import PipelineLogger
from pipeline.compress import GhostscriptService, compress_batch, find_pending
from pipeline.errors import PipelineError
from pipeline.ocr import OcrmypdfService, run_ocr_stage
from pipeline.pages import deduplicate, load_page_documents
from pipeline.render import merge_pdfs, playwright_renderer_factory, render_pages, write_split_pages
from cli.helpers import config_from_args, format_size, format_time, positive_int, print_compression_summary


def _require(**checks):
    try:
        ensure_dependencies(**checks)
    except MissingDependencyError as e:
        print(f"❌ {e}")
        sys.exit(1)


def cmd_pdf(args):
    """Render a directory of page HTML files into one PDF (or split pages)."""
    config = config_from_args(args)
    page_dir = Path(args.directory).expanduser().resolve()

    print("🚀 Fast PDF Generator")
    _require(render=True, ocr=False)

    try:
        documents = load_page_documents(page_dir)
    except PipelineError as e:
        print(f"❌ {e}")
        sys.exit(1)

    if not documents:
        print(f"❌ No page-*.html files found in {page_dir}")
        sys.exit(1)

    dedup = deduplicate(documents)
    print(f"📄 Found {len(documents)} pages ({len(dedup.units)} unique)")

    start_time = time.time()
    with tempfile.TemporaryDirectory(prefix="bookbinder-pdf-") as tmp:
        rendered = render_pages(
            dedup.units,
            Path(tmp),
            playwright_renderer_factory(config.render),
            workers=args.workers,
            settings=config.render,
        )
        if rendered.dropped:
            print(f"⚠️  {len(rendered.dropped)} pages failed to render")

        try:
            if args.split:
                output_dir = Path(args.output).expanduser() if args.output else page_dir
                written = write_split_pages(rendered.artifacts, output_dir)
                print(f"✅ Created {len(written)} page PDFs in {output_dir}")
            else:
                output_pdf = Path(args.output).expanduser() if args.output else page_dir / "book.pdf"
                page_count = merge_pdfs(rendered.artifacts, output_pdf, chunk_size=config.merge.chunk_size)
                print(f"✅ Created {output_pdf} ({page_count} pages, {format_size(output_pdf.stat().st_size)})")
        except PipelineError as e:
            print(f"❌ {e}")
            sys.exit(1)

    elapsed = time.time() - start_time
    print(f"⚡ Total time: {format_time(elapsed)}")
    if elapsed > 0:
        print(f"🚀 Speed: {rendered.rendered / elapsed:.1f} pages/sec")


def cmd_ocr(args):
    """Add a searchable text layer to one PDF."""
    config = config_from_args(args)
    input_pdf = Path(args.pdf).expanduser().resolve()

    if not input_pdf.exists():
        print(f"❌ File not found: {input_pdf}")
        sys.exit(1)

    _require(render=False, ocr=True)

    output_pdf = Path(args.output).expanduser() if args.output else input_pdf.with_name(f"{input_pdf.stem}-ocr.pdf")
    settings = config.ocr
    if args.pages is not None:
        settings = settings.model_copy(update={"max_pages": args.pages})
        print(f"📄 Processing first {args.pages} pages only")

    print(f"📄 Processing {input_pdf.name} with OCR...")

    def on_event(event):
        if event.kind == "page":
            print(f"\r📄 Processing page {event.pages_seen}...", end="", flush=True)
        elif event.kind in ("finalizing", "heartbeat", "message"):
            print(f"\n{event.describe()}")

    with PipelineLogger(input_pdf.stem, "ocr", log_dir=config.log_dir) as logger:
        try:
            run_ocr_stage(input_pdf, output_pdf, OcrmypdfService(), settings, logger, on_event=on_event)
        except PipelineError as e:
            print(f"\n❌ {e}")
            sys.exit(1)

    print(f"\n✅ Success! Created {output_pdf} ({format_size(output_pdf.stat().st_size)})")
    print("📝 The PDF now has a searchable text layer!")


def cmd_compress(args):
    """Recompress every *-ocr.pdf in a directory that has no *-llm.pdf yet."""
    config = config_from_args(args)
    directory = Path(args.directory).expanduser().resolve() if args.directory else config.output_dir

    print("\n🚀 Batch LLM PDF Converter (Parallel)")
    print("=" * 80)
    settings = config.compression
    print(f"Settings: {settings.dpi} DPI, Quality {settings.quality}")

    _require(render=False, ocr=False, compression=True)

    pairs = find_pending(directory)
    if not pairs:
        print("\n📭 No OCR PDFs found (or all LLM versions already exist)")
        return

    print(f"\n📦 Found {len(pairs)} OCR PDF(s) to convert\n")
    summary = compress_batch(pairs, GhostscriptService(), settings, workers=args.workers)

    print("=" * 80)
    print("📊 CONVERSION COMPLETE")
    print("=" * 80)
    print_compression_summary(summary)


def setup_tools_parsers(subparsers):
    pdf_parser = subparsers.add_parser('pdf', help='Render a directory of page HTML files into a PDF')
    pdf_parser.add_argument('directory', help='Directory containing page-*.html files')
    pdf_parser.add_argument('-o', '--output', help='Output PDF (or output directory with --split)')
    pdf_parser.add_argument('--split', action='store_true', help='Write one PDF per page instead of merging')
    pdf_parser.add_argument('--workers', type=positive_int, default=None, help='Parallel page renderers')
    pdf_parser.set_defaults(func=cmd_pdf)

    ocr_parser = subparsers.add_parser('ocr', help='Add a searchable text layer to a PDF')
    ocr_parser.add_argument('pdf', help='Input PDF')
    ocr_parser.add_argument('-o', '--output', help='Output PDF (default: <name>-ocr.pdf)')
    ocr_parser.add_argument('--pages', type=positive_int, default=None, help='Only OCR the first N pages')
    ocr_parser.set_defaults(func=cmd_ocr)

    compress_parser = subparsers.add_parser('compress', help='Create LLM-friendly PDFs from *-ocr.pdf files')
    compress_parser.add_argument('directory', nargs='?', default=None, help='Directory to scan (default: output_dir)')
    compress_parser.add_argument('--workers', type=positive_int, default=None, help='Files compressed at once (default: cpu_count - 2)')
    compress_parser.set_defaults(func=cmd_compress)
