"""
Stage logging.

Every stage appends JSON lines to <log_dir>/<stage>.jsonl, one file per stage
shared by all archives; each line carries the archive it belongs to. The
file (and log_dir) is only created once the first record is written.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

STRUCTURED_FIELDS = ('archive', 'stage', 'page', 'phase', 'duration_seconds', 'error')

_PASSTHROUGH = ('exc_info', 'stack_info')


class FlushingFileHandler(logging.FileHandler):
    """Flush after every record so `tail -f` sees OCR progress as it happens."""
    def emit(self, record):
        super().emit(record)
        self.flush()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """One line per record: time, level mark, archive/stage, message."""

    MARKS = {
        'DEBUG': '·',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    def format(self, record: logging.LogRecord) -> str:
        line = [
            datetime.fromtimestamp(record.created).strftime('%H:%M:%S'),
            self.MARKS.get(record.levelname, ''),
            f"{getattr(record, 'archive', '-')}/{getattr(record, 'stage', '-')}",
        ]
        page = getattr(record, 'page', None)
        if page is not None:
            line.append(f"page {page}:")
        line.append(record.getMessage())

        duration = getattr(record, 'duration_seconds', None)
        if duration is not None:
            line.append(f"({duration:.1f}s)")
        return ' '.join(part for part in line if part)


class PipelineLogger:
    """
    Logger bound to one archive and one stage.

    Keyword arguments to debug/info/warning/error become structured fields
    of the JSON record (page=, phase=, duration_seconds=, error=, or an
    archive= override for batch-level messages).
    """

    def __init__(
        self,
        archive: str,
        stage: str,
        log_dir: Path,
        console_output: bool = False,
        level: str = "INFO",
    ):
        self.archive = archive
        self.stage = stage
        self.log_dir = Path(log_dir)
        self.console_output = console_output
        self.level = level
        self.log_file: Optional[Path] = None
        self._logger: Optional[logging.Logger] = None

    def _get_logger(self) -> logging.Logger:
        if self._logger is not None:
            return self._logger

        # One logging.Logger per instance: handlers are never shared between archives
        logger = logging.getLogger(f"bookbinder.{self.stage}.{self.archive}.{id(self)}")
        logger.setLevel(self.level.upper())
        logger.propagate = False

        if self.console_output:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(ConsoleFormatter())
            logger.addHandler(console)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"{self.stage}.jsonl"
        handler = FlushingFileHandler(self.log_file, mode='a')
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        self._logger = logger
        return logger

    def _log(self, level: int, message: str, **fields):
        options = {name: fields.pop(name) for name in _PASSTHROUGH if name in fields}
        extra = {'archive': self.archive, 'stage': self.stage}
        extra.update(fields)
        self._get_logger().log(level, message, extra=extra, **options)

    def debug(self, message: str, **fields):
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields):
        self._log(logging.ERROR, message, **fields)

    def for_stage(self, stage: str, archive: Optional[str] = None) -> "PipelineLogger":
        """Logger for another stage (and optionally another archive) with the same settings."""
        return PipelineLogger(
            archive or self.archive,
            stage,
            log_dir=self.log_dir,
            console_output=self.console_output,
            level=self.level,
        )

    def close(self):
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)
        self._logger = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def create_logger(archive: str, stage: str, log_dir: Optional[Path] = None, **kwargs) -> PipelineLogger:
    """PipelineLogger writing to the configured log_dir unless one is given."""
    if log_dir is None:
        from infra.config import get_config
        log_dir = get_config().log_dir
    return PipelineLogger(archive, stage, log_dir=log_dir, **kwargs)
