import logging
import shutil
from pathlib import Path
from typing import List

import fitz  # PyMuPDF

from pipeline.errors import MergeError
from .schemas import PageArtifact

logger = logging.getLogger(__name__)


def merge_pdfs(artifacts: List[PageArtifact], output_path: Path, chunk_size: int = 100) -> int:
    """
    Concatenate page artifacts, in list order, into one PDF.

    Sources are opened one at a time and closed right after their pages are
    copied. The result is written next to the output and moved into place,
    so a failed merge never leaves a partial output_path.

    Returns the page count of the merged document.
    """
    if not artifacts:
        raise MergeError("No page PDFs to merge")
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_name(f".{output_path.name}.tmp")

    merged = fitz.open()
    try:
        for start in range(0, len(artifacts), chunk_size):
            chunk = artifacts[start:start + chunk_size]
            for artifact in chunk:
                try:
                    with fitz.open(str(artifact.path)) as src:
                        merged.insert_pdf(src)
                except Exception as e:
                    raise MergeError(f"Cannot read page PDF {artifact.path.name}: {e}") from e
            logger.debug(f"Merged {min(start + chunk_size, len(artifacts))}/{len(artifacts)} page PDFs")

        page_count = merged.page_count
        merged.save(str(temp_path), garbage=3, deflate=True)
    except MergeError:
        temp_path.unlink(missing_ok=True)
        raise
    except Exception as e:
        temp_path.unlink(missing_ok=True)
        raise MergeError(f"Failed to write {output_path.name}: {e}") from e
    finally:
        merged.close()

    temp_path.replace(output_path)
    logger.info(f"Merged {len(artifacts)} page PDFs into {output_path.name} ({page_count} pages)")
    return page_count


def write_split_pages(artifacts: List[PageArtifact], output_dir: Path) -> List[Path]:
    """Copy page artifacts out as book-page-NNN.pdf instead of merging them."""
    if not artifacts:
        raise MergeError("No page PDFs to write")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for index, artifact in enumerate(artifacts, start=1):
        target = output_dir / f"book-page-{index:03d}.pdf"
        shutil.copyfile(artifact.path, target)
        written.append(target)

    logger.info(f"Wrote {len(written)} split page PDFs to {output_dir}")
    return written
