from abc import ABC, abstractmethod
from typing import Optional

from infra.config import RenderSettings
from pipeline.errors import PageRenderError, RendererCrashedError
from .dimensions import PageDimensions

CHROMIUM_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-web-security',
    '--disable-gpu',
    '--disable-software-rasterizer',
    '--disable-extensions',
]

BLANK_DOCUMENT = '<html></html>'


class PageRenderer(ABC):
    """
    Turns one page document into one PDF page.

    A renderer is started once, then reused for many documents by a single
    worker. render() raises PageRenderError for a bad document and
    RendererCrashedError when the renderer can no longer be used.
    """

    def start(self) -> None:
        pass

    @abstractmethod
    def render(self, content: bytes, dims: PageDimensions) -> bytes:
        pass

    def reset(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class PlaywrightRenderer(PageRenderer):
    """Headless Chromium through the Playwright sync API. Owned by one thread."""

    def __init__(self, settings: Optional[RenderSettings] = None):
        self.settings = settings or RenderSettings()
        self._playwright = None
        self._browser = None
        self._page = None

    def start(self) -> None:
        from playwright.sync_api import sync_playwright, Error as PlaywrightError

        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=True,
                args=CHROMIUM_ARGS,
                timeout=self.settings.launch_timeout_ms,
            )
            self._page = self._browser.new_page(viewport={
                'width': self.settings.viewport_width,
                'height': self.settings.viewport_height,
            })
            self._page.set_default_timeout(self.settings.launch_timeout_ms)
        except PlaywrightError as e:
            self.close()
            raise RendererCrashedError(f"Browser launch failed: {e}") from e

    def _check_alive(self):
        if self._page is None or self._page.is_closed() or not self._browser.is_connected():
            raise RendererCrashedError("Browser is no longer running")

    def render(self, content: bytes, dims: PageDimensions) -> bytes:
        from playwright.sync_api import Error as PlaywrightError

        self._check_alive()
        html = content.decode('utf-8', errors='replace')

        try:
            self._page.set_content(
                html,
                wait_until='domcontentloaded',
                timeout=self.settings.content_timeout_ms,
            )
            return self._page.pdf(
                width=dims.width,
                height=dims.height,
                print_background=True,
                margin={'top': '0mm', 'right': '0mm', 'bottom': '0mm', 'left': '0mm'},
                prefer_css_page_size=False,
            )
        except PlaywrightError as e:
            self._check_alive()
            raise PageRenderError(str(e)) from e

    def reset(self) -> None:
        from playwright.sync_api import Error as PlaywrightError

        if self._page is None or self._page.is_closed():
            return
        try:
            self._page.set_content(BLANK_DOCUMENT, wait_until='domcontentloaded')
        except PlaywrightError:
            self._check_alive()

    def close(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception:
                pass
            self._browser = None
            self._page = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception:
                pass
            self._playwright = None


def playwright_renderer_factory(settings: Optional[RenderSettings] = None):
    def factory() -> PageRenderer:
        return PlaywrightRenderer(settings)
    return factory
