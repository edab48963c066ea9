import argparse
from pathlib import Path
from typing import Iterable, Optional

from infra.config import BinderConfig, get_config, load_config


def config_from_args(args) -> BinderConfig:
    root = getattr(args, 'root', None)
    if root:
        return load_config(Path(root))
    return get_config()


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def format_size(num_bytes: int) -> str:
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def format_time(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def print_file(path: Path, prefix: str = "   "):
    if path.exists():
        print(f"{prefix}✓ {path.name} ({format_size(path.stat().st_size)})")


def print_generated_files(config: BinderConfig, archive_names: Iterable[str], include_llm: bool = False):
    """List the output PDFs that exist for each archive, with sizes."""
    names = list(archive_names)
    if not names:
        return

    print("\n📄 Generated files:")
    for name in names:
        base = Path(name).stem
        print(f"\n   {base}:")
        print_file(config.output_dir / f"{base}.pdf", prefix="      ")
        print_file(config.output_dir / f"{base}-ocr.pdf", prefix="      ")
        if include_llm:
            print_file(config.output_dir / f"{base}-llm.pdf", prefix="      ")


def print_compression_summary(summary, heading: Optional[str] = "📊 Compression statistics:"):
    print(f"\n✅ Successful: {len(summary.results)}")
    print(f"❌ Failed: {len(summary.failed)}")
    if summary.skipped:
        print(f"⏭️  Skipped (already compressed): {len(summary.skipped)}")

    if summary.results:
        if heading:
            print(f"\n{heading}")
        print(f"   Mode: {summary.mode}")
        print(f"   Total input size: {format_size(summary.total_input_size)}")
        print(f"   Total output size: {format_size(summary.total_output_size)}")
        print(f"   Average compression: {summary.mean_ratio:.1f}x")
        print(f"   Space saved: {format_size(summary.bytes_saved)}")
        print(f"   Total time: {format_time(summary.total_time_seconds)}")
        print(f"   Speed: {summary.files_per_second:.2f} PDFs/sec")

    if summary.failed:
        print("\n❌ Failed files:")
        for src, error in summary.failed:
            print(f"   - {Path(src).name}: {error}")
