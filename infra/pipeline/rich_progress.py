"""Rich progress bar for the render pool.

Render workers report each finished unit from their own thread, so every
update goes through one lock. The bar is transient and disappears when
the pool is done. With BOOKBINDER_HEADLESS=1 (batch logs, tests) nothing is
drawn but the counters still advance.
"""

import os
import threading

from rich.progress import (
    Progress,
    BarColumn,
    MofNCompleteColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


def is_headless() -> bool:
    return os.environ.get('BOOKBINDER_HEADLESS', '').lower() in ('1', 'true', 'yes')


class RichProgressBar:
    def __init__(self, total: int, description: str = "Rendering", unit: str = "pages"):
        self.total = total
        self.unit = unit
        self.completed = 0
        self.failed = 0
        self.enabled = not is_headless()

        self._lock = threading.Lock()
        self._task_id = None
        self._progress = Progress(
            TextColumn(f"   {description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TextColumn("{task.fields[rate]}"),
            TimeElapsedColumn(),
            TextColumn("eta"),
            TimeRemainingColumn(),
            TextColumn("[red]{task.fields[failures]}"),
            transient=True,
        )

    def start(self) -> "RichProgressBar":
        with self._lock:
            if self.enabled and self._task_id is None:
                self._progress.start()
                self._task_id = self._progress.add_task("", total=self.total, rate="", failures="")
        return self

    def advance(self, ok: bool = True):
        with self._lock:
            self.completed += 1
            if not ok:
                self.failed += 1
            if self._task_id is None:
                return

            elapsed = self._progress.tasks[self._task_id].elapsed or 0
            rate = f"{self.completed / elapsed:.1f} {self.unit}/s" if elapsed > 0 else ""
            failures = f"{self.failed} failed" if self.failed else ""
            self._progress.update(self._task_id, completed=self.completed, rate=rate, failures=failures)

    def finish(self, message: str = ""):
        with self._lock:
            if self._task_id is not None:
                self._progress.stop()
                self._task_id = None
        if message:
            print(message)

    def __enter__(self):
        return self.start()

    def __exit__(self, *args):
        self.finish()
        return False
