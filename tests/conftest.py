"""
Shared fixtures.

All tests use real filesystem operations with temporary directories.
External tools are replaced by the fakes in tests/fakes.py.
"""

import pytest

from infra.config import BinderConfig, OCRSettings, CompressionSettings
from infra.pipeline.logger import PipelineLogger
from infra.pipeline.runner import BatchRunner, PipelineServices
from infra.pipeline.storage.progress_store import ProgressStore
from tests.fakes import FakeOCRService, FakeCompressionService, RendererFactory


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def config(tmp_path):
    return BinderConfig(
        root=tmp_path,
        ocr=OCRSettings(heartbeat_seconds=5),
        compression=CompressionSettings(workers=2),
    )


@pytest.fixture
def store(config):
    return ProgressStore(config.progress_file).load()


@pytest.fixture
def batch_logger(config):
    logger = PipelineLogger("batch", "batch", log_dir=config.log_dir)
    yield logger
    logger.close()


@pytest.fixture
def renderer_factory():
    return RendererFactory()


@pytest.fixture
def services(renderer_factory):
    return PipelineServices(
        renderer_factory=renderer_factory,
        ocr=FakeOCRService(),
        compression=FakeCompressionService(),
    )


@pytest.fixture
def runner(config, store, services, batch_logger):
    config.input_dir.mkdir(parents=True, exist_ok=True)
    return BatchRunner(config, store, services, batch_logger, workers=2, show_progress=False)
