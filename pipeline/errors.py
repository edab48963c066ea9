"""Stage errors raised by the page, render, OCR and compression pipeline."""


class PipelineError(Exception):
    pass


class ArchiveError(PipelineError):
    """Archive could not be opened or holds no page documents."""


class PageRenderError(PipelineError):
    """A single page document could not be parsed or rendered."""


class RendererCrashedError(PipelineError):
    """The renderer itself is unusable (browser died); the owning worker stops."""


class MergeError(PipelineError):
    pass


class OCRStageError(PipelineError):
    def __init__(self, message: str, exit_code: int = None):
        super().__init__(message)
        self.exit_code = exit_code


class CompressionError(PipelineError):
    def __init__(self, message: str, exit_code: int = None):
        super().__init__(message)
        self.exit_code = exit_code
