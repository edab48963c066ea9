from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from infra.pipeline.schemas import STAGES
from infra.pipeline.storage.metrics import MetricsManager
from infra.pipeline.storage.progress_store import ProgressStore
from cli.helpers import config_from_args, format_size, format_time

STATUS_STYLES = {
    "pending": "dim",
    "processing": "yellow",
    "completed": "green",
    "failed": "red",
}


def _flag(done: bool) -> str:
    return "✅" if done else "○"


def _stage_time(metrics: MetricsManager, name: str) -> str:
    seconds = metrics.total_time(Path(name).stem)
    return format_time(seconds) if seconds else ""


def _stage_summary(metrics: MetricsManager, stage: str) -> str:
    totals = metrics.stage_totals(stage)
    if not totals["count"]:
        return ""
    parts = [f"{stage.upper()}: {totals['count']} archive(s)", format_time(totals.get("time_seconds", 0.0))]
    if stage == "pdf":
        parts.append(f"{int(totals.get('page_count', 0))} pages")
    elif stage == "ocr":
        parts.append(f"{int(totals.get('pages_seen', 0))} pages read")
    elif stage == "llm":
        saved = totals.get("input_size", 0) - totals.get("output_size", 0)
        parts.append(f"{format_size(saved)} saved")
    return ", ".join(parts)


def cmd_status(args):
    config = config_from_args(args)
    store = ProgressStore(config.progress_file).load()
    records = list(store.items())

    if not records:
        print(f"No archives processed yet (progress file: {config.progress_file})")
        return

    metrics = MetricsManager(config.metrics_file)

    table = Table(title=f"Batch progress ({len(records)} archives)")
    table.add_column("Archive")
    table.add_column("Status")
    table.add_column("PDF", justify="center")
    table.add_column("OCR", justify="center")
    table.add_column("LLM", justify="center")
    table.add_column("Updated")
    table.add_column("Time", justify="right")
    table.add_column("Error", overflow="fold")

    for name, record in records:
        style = STATUS_STYLES.get(record.status, "")
        updated = record.failed_at if record.status == "failed" else (record.completed_at or record.started_at)
        table.add_row(
            Text(name),
            f"[{style}]{record.status}[/{style}]" if style else record.status,
            _flag(record.pdf),
            _flag(record.ocr),
            _flag(record.llm),
            (updated or "")[:19],
            _stage_time(metrics, name),
            Text(record.error or ""),
        )

    Console().print(table)

    summaries = [line for line in (_stage_summary(metrics, stage) for stage in STAGES) if line]
    if summaries:
        print("\n⏱️  Stage totals:")
        for line in summaries:
            print(f"   {line}")
        print(f"   Total: {format_time(metrics.total_time())}")


def setup_status_parser(subparsers):
    status_parser = subparsers.add_parser('status', help='Show per-archive progress')
    status_parser.set_defaults(func=cmd_status)
