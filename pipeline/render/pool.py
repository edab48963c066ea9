"""
Render worker pool.

W worker threads pull render units from one shared queue until it is empty.
Each worker owns exactly one renderer (one browser), started once and reused
for every unit it pulls. A bad page document only drops that unit; a crashed
renderer only stops its own worker, and the remaining queue is drained by
the others.
"""

import logging
import multiprocessing
import queue
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from infra.config import RenderSettings
from infra.pipeline.rich_progress import RichProgressBar
from pipeline.errors import RendererCrashedError
from pipeline.pages.schemas import RenderUnit
from .dimensions import resolve_dimensions
from .renderer import PageRenderer
from .schemas import PageArtifact, RenderResult

logger = logging.getLogger(__name__)

RendererFactory = Callable[[], PageRenderer]


def worker_count(units: int, requested: Optional[int] = None) -> int:
    """Requested count, else cpu_count - 1 (one CPU stays with the caller), capped by units."""
    if units <= 0:
        return 0
    default = max(1, multiprocessing.cpu_count() - 1)
    return max(1, min(units, requested or default))


def artifact_path(workspace: Path, ordinal: int) -> Path:
    return Path(workspace) / f"page-{ordinal:04d}.pdf"


class _RenderWorker(threading.Thread):

    def __init__(
        self,
        worker_id: int,
        tasks: "queue.Queue[RenderUnit]",
        workspace: Path,
        renderer_factory: RendererFactory,
        settings: RenderSettings,
        result: RenderResult,
        lock: threading.Lock,
        progress: Optional[RichProgressBar] = None,
    ):
        super().__init__(name=f"render-worker-{worker_id}", daemon=True)
        self.worker_id = worker_id
        self.tasks = tasks
        self.workspace = workspace
        self.renderer_factory = renderer_factory
        self.settings = settings
        self.result = result
        self.lock = lock
        self.progress = progress
        self.rendered = 0
        self.crashed: Optional[str] = None

    def run(self):
        try:
            renderer = self.renderer_factory()
            renderer.start()
        except Exception as e:
            self.crashed = str(e)
            logger.error(f"Worker {self.worker_id}: renderer failed to start: {e}")
            return

        try:
            while True:
                try:
                    unit = self.tasks.get_nowait()
                except queue.Empty:
                    break

                ok = False
                try:
                    self._render_unit(renderer, unit)
                    ok = True
                except RendererCrashedError as e:
                    self.crashed = str(e)
                    self._drop(unit, f"renderer crashed: {e}")
                    logger.error(f"Worker {self.worker_id}: renderer crashed, stopping: {e}")
                    break
                except Exception as e:
                    self._drop(unit, str(e))
                    logger.error(f"Worker {self.worker_id}: page {unit.ordinal} ({unit.document.name}) failed: {e}")
                finally:
                    self.tasks.task_done()
                    if self.progress:
                        self.progress.advance(ok=ok)
        finally:
            renderer.close()

        logger.debug(f"Worker {self.worker_id}: rendered {self.rendered} pages")

    def _render_unit(self, renderer: PageRenderer, unit: RenderUnit):
        doc = unit.document
        dims = resolve_dimensions(
            doc.content,
            base_dir=doc.source_dir,
            page_width_mm=self.settings.page_width_mm,
            default_height_mm=self.settings.default_height_mm,
        )

        pdf_bytes = renderer.render(doc.content, dims)

        path = artifact_path(self.workspace, doc.ordinal)
        path.write_bytes(pdf_bytes)

        renderer.reset()

        with self.lock:
            self.result.artifacts.append(PageArtifact(ordinal=doc.ordinal, name=doc.name, path=path))
        self.rendered += 1

    def _drop(self, unit: RenderUnit, reason: str):
        with self.lock:
            self.result.dropped.append((unit.ordinal, reason))


def render_pages(
    units: List[RenderUnit],
    workspace: Path,
    renderer_factory: RendererFactory,
    workers: Optional[int] = None,
    settings: Optional[RenderSettings] = None,
    show_progress: bool = True,
) -> RenderResult:
    """
    Render every unit into workspace/page-NNNN.pdf.

    Returns artifacts sorted by ordinal (never completion order) plus the
    units that were dropped and why.
    """
    settings = settings or RenderSettings()
    workspace = Path(workspace)
    workspace.mkdir(parents=True, exist_ok=True)

    result = RenderResult()
    if not units:
        return result

    start_time = time.time()
    result.workers = worker_count(len(units), workers or settings.workers)

    tasks: "queue.Queue[RenderUnit]" = queue.Queue()
    for unit in units:
        tasks.put(unit)

    logger.info(f"Rendering {len(units)} pages with {result.workers} workers")

    progress = None
    if show_progress:
        progress = RichProgressBar(total=len(units), description="Rendering", unit="pages").start()

    lock = threading.Lock()
    pool = [
        _RenderWorker(i + 1, tasks, workspace, renderer_factory, settings, result, lock, progress)
        for i in range(result.workers)
    ]

    for worker in pool:
        worker.start()
    for worker in pool:
        worker.join()

    if progress:
        progress.finish()

    # Every worker died: whatever is still queued will never render
    while True:
        try:
            unit = tasks.get_nowait()
        except queue.Empty:
            break
        result.dropped.append((unit.ordinal, "no live render worker"))

    crashed = [w for w in pool if w.crashed]
    if crashed:
        logger.warning(f"{len(crashed)} of {len(pool)} render workers stopped early")

    result.artifacts.sort(key=lambda a: a.ordinal)
    result.dropped.sort()
    result.duration_seconds = time.time() - start_time

    if result.dropped:
        logger.warning(f"Dropped {len(result.dropped)} of {len(units)} pages during rendering")
        for ordinal, reason in result.dropped[:20]:
            logger.warning(f"  page {ordinal}: {reason}")

    return result
