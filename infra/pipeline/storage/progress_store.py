"""
Job record store for resumable batch runs.

One JSON file maps archive name -> JobRecord. The store is read once
(load) and rewritten atomically after every mutation (update/save), so a
crash leaves either the previous or the new file on disk, never a torn one.

Usage:
    store = ProgressStore(config.progress_file)
    store.load()

    record = store.get("bookA.zip")           # pending record if unknown
    store.update("bookA.zip", status="processing", started_at=now())
    store.mark_stage_complete("bookA.zip", "pdf", output_path)
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, Tuple

from pydantic import ValidationError

from infra.pipeline.schemas import JobRecord, STAGES

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now().isoformat()


class ProgressStore:

    def __init__(self, progress_file: Path):
        self.progress_file = Path(progress_file)
        self._records: Dict[str, JobRecord] = {}

    def load(self) -> "ProgressStore":
        """Read the progress file. A missing or unreadable file starts fresh."""
        self._records = {}

        if not self.progress_file.exists():
            return self

        try:
            with open(self.progress_file, 'r') as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("progress file is not a JSON object")
            self._records = {
                name: JobRecord.model_validate(data)
                for name, data in raw.items()
            }
        except (json.JSONDecodeError, ValidationError, ValueError, OSError) as e:
            logger.warning(f"Could not read progress file {self.progress_file}, starting fresh: {e}")
            self._records = {}

        return self

    def get(self, name: str) -> JobRecord:
        """Copy of the record for an archive (pending defaults when unknown)."""
        record = self._records.get(name)
        if record is None:
            return JobRecord()
        return record.model_copy()

    def __contains__(self, name: str) -> bool:
        return name in self._records

    def items(self) -> Iterator[Tuple[str, JobRecord]]:
        for name in sorted(self._records):
            yield name, self._records[name].model_copy()

    def update(self, name: str, **fields) -> JobRecord:
        """Apply field updates to one record and save immediately."""
        record = self._records.get(name) or JobRecord()
        data = record.model_dump()
        data.update(fields)
        self._records[name] = JobRecord.model_validate(data)
        self.save()
        return self._records[name].model_copy()

    def mark_stage_complete(self, name: str, stage: str, output_path: Path) -> JobRecord:
        """Set a stage flag, but only once its output is confirmed on disk."""
        if stage not in STAGES:
            raise ValueError(f"Unknown stage: {stage} (expected one of {', '.join(STAGES)})")

        output_path = Path(output_path)
        if not output_path.exists():
            raise FileNotFoundError(
                f"Cannot mark {stage} complete for {name}: output missing ({output_path})"
            )

        return self.update(name, **{stage: True, f"{stage}_created_at": now_iso()})

    def is_stage_complete(self, name: str, stage: str, output_path: Path) -> bool:
        """Flag alone is not trusted: the output must still exist."""
        return bool(getattr(self.get(name), stage)) and Path(output_path).exists()

    def save(self) -> None:
        """
        Whole-file atomic rewrite.

        Raises:
            RuntimeError: If the save fails (disk full, permissions, etc.)
        """
        self.progress_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.progress_file.with_suffix(self.progress_file.suffix + '.tmp')

        payload = {
            name: record.model_dump(exclude_none=True)
            for name, record in sorted(self._records.items())
        }

        try:
            with open(temp_file, 'w') as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            temp_file.replace(self.progress_file)

        except Exception as e:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    pass
            logger.error(f"Failed to save progress file {self.progress_file}: {e}")
            raise RuntimeError(f"Progress save failed for {self.progress_file}: {e}") from e
