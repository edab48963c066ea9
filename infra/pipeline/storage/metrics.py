"""
Per-archive stage metrics.

Layout of the metrics file:

    {
      "version": 2,
      "updated_at": "...",
      "archives": {
        "bookA": {
          "pdf": {"time_seconds": 12.4, "page_count": 310, ...},
          "ocr": {"time_seconds": 95.0, "pages_seen": 310, ...}
        }
      }
    }

Values are whatever the stage reports (sizes, counts, ratios). Only
time_seconds is common to every entry.
"""

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

METRICS_VERSION = 2


class MetricsManager:

    def __init__(self, metrics_file: Path):
        self.metrics_file = Path(metrics_file)
        self._lock = threading.RLock()
        self._archives: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._load()

    def record(self, archive: str, stage: str, time_seconds: float = 0.0, **values) -> None:
        """Replace the stage entry of an archive (a rerun overwrites the old numbers) and save."""
        with self._lock:
            entry = dict(values, time_seconds=time_seconds)
            entry["recorded_at"] = datetime.now().isoformat()
            self._archives.setdefault(archive, {})[stage] = entry
            self._save()

    def get(self, archive: str, stage: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._archives.get(archive, {}).get(stage)
            return dict(entry) if entry is not None else None

    def total_time(self, archive: Optional[str] = None) -> float:
        """Seconds spent across every stage, for one archive or all of them."""
        with self._lock:
            names = [archive] if archive is not None else list(self._archives)
            return sum(
                entry.get("time_seconds", 0.0)
                for name in names
                for entry in self._archives.get(name, {}).values()
            )

    def stage_totals(self, stage: str) -> Dict[str, float]:
        """Count plus summed numeric values of one stage over all archives."""
        with self._lock:
            totals: Dict[str, float] = {"count": 0}
            for stages in self._archives.values():
                entry = stages.get(stage)
                if entry is None:
                    continue
                totals["count"] += 1
                for key, value in entry.items():
                    if _is_number(value):
                        totals[key] = totals.get(key, 0) + value
            return totals

    def _load(self):
        if not self.metrics_file.exists():
            return
        try:
            with open(self.metrics_file, 'r') as f:
                state = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read metrics file {self.metrics_file}, starting fresh: {e}")
            return

        archives = state.get("archives") if isinstance(state, dict) else None
        if isinstance(archives, dict):
            self._archives = archives
        else:
            logger.warning(f"Ignoring metrics file {self.metrics_file} with unknown layout")

    def _save(self):
        self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.metrics_file.with_suffix('.tmp')
        state = {
            "version": METRICS_VERSION,
            "updated_at": datetime.now().isoformat(),
            "archives": self._archives,
        }

        try:
            with open(temp_file, 'w') as f:
                json.dump(state, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            temp_file.replace(self.metrics_file)
        except OSError as e:
            temp_file.unlink(missing_ok=True)
            raise RuntimeError(f"Failed to save metrics: {e}") from e


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
