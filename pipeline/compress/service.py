import logging
import multiprocessing
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from infra.config import CompressionSettings

logger = logging.getLogger(__name__)

GS_PATHS = (
    '/opt/homebrew/bin/gs',
    '/usr/local/bin/gs',
    '/usr/bin/gs',
)


def find_ghostscript() -> Optional[str]:
    found = shutil.which('gs')
    if found:
        return found
    for gs_path in GS_PATHS:
        if Path(gs_path).exists():
            return gs_path
    return None


class RecompressionService(ABC):
    """Rewrites a PDF into a smaller one. Returns the tool's exit code."""

    @abstractmethod
    def run(self, src: Path, dst: Path, settings: CompressionSettings) -> int:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class GhostscriptService(RecompressionService):
    """gs pdfwrite with /screen settings, bicubic downsampling and DCT (JPEG) images."""

    def __init__(self, gs_path: Optional[str] = None):
        self.gs_path = gs_path or find_ghostscript() or 'gs'

    @property
    def name(self) -> str:
        return "ghostscript"

    def build_command(self, src: Path, dst: Path, settings: CompressionSettings) -> List[str]:
        dpi = settings.dpi
        return [
            self.gs_path,
            '-sDEVICE=pdfwrite',
            '-dCompatibilityLevel=1.4',
            '-dPDFSETTINGS=/screen',
            '-dNOPAUSE',
            '-dQUIET',
            '-dBATCH',
            '-dSAFER',
            f'-dNumRenderingThreads={min(4, multiprocessing.cpu_count())}',
            # Image downsampling
            '-dDownsampleColorImages=true',
            '-dDownsampleGrayImages=true',
            '-dDownsampleMonoImages=true',
            f'-dColorImageResolution={dpi}',
            f'-dGrayImageResolution={dpi}',
            f'-dMonoImageResolution={settings.mono_dpi}',
            '-dColorImageDownsampleType=/Bicubic',
            '-dGrayImageDownsampleType=/Bicubic',
            '-dMonoImageDownsampleType=/Subsample',
            # JPEG
            '-dAutoFilterColorImages=false',
            '-dAutoFilterGrayImages=false',
            '-dColorImageFilter=/DCTEncode',
            '-dGrayImageFilter=/DCTEncode',
            f'-dJPEGQ={settings.quality}',
            # Fonts and structure
            '-dSubsetFonts=true',
            '-dCompressFonts=true',
            '-dEmbedAllFonts=false',
            '-dDetectDuplicateImages=true',
            '-dFastWebView=true',
            f'-sOutputFile={dst}',
            str(src),
        ]

    def run(self, src: Path, dst: Path, settings: CompressionSettings) -> int:
        result = subprocess.run(
            self.build_command(src, dst, settings),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors='replace',
        )
        if result.returncode != 0 and result.stderr:
            logger.warning(f"Ghostscript stderr for {Path(src).name}: {result.stderr.strip()[:500]}")
        return result.returncode
