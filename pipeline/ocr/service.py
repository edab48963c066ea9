import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List

from infra.config import OCRSettings

LineCallback = Callable[[str], None]


class OCRService(ABC):
    """Adds a text layer to a PDF. Returns the tool's exit code."""

    @abstractmethod
    def run(self, src: Path, dst: Path, settings: OCRSettings, on_line: LineCallback) -> int:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class OcrmypdfService(OCRService):
    """Runs ocrmypdf as a subprocess of the current interpreter."""

    @property
    def name(self) -> str:
        return "ocrmypdf"

    def build_command(self, src: Path, dst: Path, settings: OCRSettings) -> List[str]:
        cmd: List[str] = [
            sys.executable,
            "-m",
            "ocrmypdf",
        ]

        if settings.force_ocr:
            cmd.append("--force-ocr")
        else:
            cmd.append("--skip-text")

        cmd.extend([
            "--jobs",
            str(settings.jobs),
            "--tesseract-timeout",
            str(settings.page_timeout_seconds),
            "--pdf-renderer",
            settings.pdf_renderer,
            "--optimize",
            str(settings.optimize),
        ])

        if settings.rotate_pages:
            cmd.append("--rotate-pages")

        # Verbosity 1 reports page progress
        cmd.extend(["-v", "1"])

        if settings.max_pages:
            cmd.extend(["--pages", f"1-{settings.max_pages}"])

        cmd.extend([str(src), str(dst)])
        return cmd

    def run(self, src: Path, dst: Path, settings: OCRSettings, on_line: LineCallback) -> int:
        cmd = self.build_command(src, dst, settings)

        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            bufsize=1,
        )
        try:
            for line in process.stdout:
                on_line(line)
        finally:
            process.stdout.close()
            returncode = process.wait()

        return returncode
