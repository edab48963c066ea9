import sys

from infra.dependencies import MissingDependencyError, ensure_dependencies
from infra.pipeline.logger import PipelineLogger
from infra.pipeline.runner import BatchRunner, PipelineServices
from infra.pipeline.storage.progress_store import ProgressStore
from cli.helpers import config_from_args, positive_int, print_compression_summary, print_generated_files


def cmd_batch(args, services: PipelineServices = None):
    """Process every archive in the input directory (resumes from the progress file)."""
    config = config_from_args(args)

    print("\n🚀 Batch PDF & OCR Processor")
    print("=" * 80)
    if args.llm:
        print("📚 LLM-friendly PDF generation: ENABLED")

    if not config.input_dir.exists():
        config.input_dir.mkdir(parents=True, exist_ok=True)
        print(f"📁 Created input directory: {config.input_dir}")
        print(f"👉 Place your .zip files in {config.input_dir} and run again")
        return

    store = ProgressStore(config.progress_file).load()
    logger = PipelineLogger("batch", "batch", log_dir=config.log_dir, console_output=args.verbose)
    if services is None:
        services = PipelineServices.default(config)

    runner = BatchRunner(config, store, services, logger, workers=args.workers)

    archives = runner.discover_archives()
    if not archives:
        print(f"\n📭 No .zip files found in {config.input_dir}")
        print(f"👉 Place your .zip files in {config.input_dir} and run again")
        logger.close()
        return

    print("\n🔍 Checking dependencies...")
    try:
        ensure_dependencies(render=True, ocr=True, compression=args.llm)
    except MissingDependencyError as e:
        print(f"❌ {e}")
        logger.close()
        sys.exit(1)
    print("✅ All dependencies found")

    print(f"\n📦 Found {len(archives)} archive(s)")

    try:
        report = runner.run(generate_llm=args.llm)
    finally:
        logger.close()

    print("\n" + "=" * 80)
    print("📊 BATCH PROCESSING COMPLETE")
    print("=" * 80)
    print(f"✅ Succeeded: {len(report.succeeded)}")
    print(f"⏭️  Skipped: {len(report.skipped)}")
    print(f"❌ Failed: {len(report.failed)}")

    if report.failed:
        print("\n❌ Failed archives:")
        for name, error in report.failed:
            print(f"   - {name}: {error}")

    if report.compression:
        print("\n🗜️  LLM-friendly compression:")
        print_compression_summary(report.compression, heading=None)

    print_generated_files(config, report.succeeded + report.skipped, include_llm=args.llm)


def setup_batch_parser(subparsers):
    batch_parser = subparsers.add_parser('batch', help='Process every .zip archive in the input directory')
    batch_parser.add_argument('--llm', action='store_true', help='Also create LLM-friendly compressed PDFs')
    batch_parser.add_argument('--workers', type=positive_int, default=None, help='Parallel page renderers (default: cpu_count - 1)')
    batch_parser.add_argument('-v', '--verbose', action='store_true', help='Echo stage logs to the console')
    batch_parser.set_defaults(func=cmd_batch)
