"""
Archive extraction and page document loading.

Archives are flat sets of page-NNN-<chapter>.html files. Member paths are
flattened to their base names on extraction, and documents are ordered by
file name.
"""

import logging
import re
import zipfile
from pathlib import Path
from typing import List

from pipeline.errors import ArchiveError
from .schemas import PageDocument

logger = logging.getLogger(__name__)

PAGE_NAME_PATTERN = re.compile(r'^page-(\d+)-(.+)\.html$', re.IGNORECASE)


def parse_label(name: str) -> str:
    match = PAGE_NAME_PATTERN.match(name)
    if match:
        return match.group(2)
    return Path(name).stem


def _is_html(name: str) -> bool:
    return name.lower().endswith('.html')


def load_page_documents(directory: Path) -> List[PageDocument]:
    """
    Load *.html page documents from a directory.

    When any file matches page-*.html, only those are used, so stray
    index or cover pages next to the extraction are ignored.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ArchiveError(f"Page directory not found: {directory}")

    files = [p for p in directory.iterdir() if p.is_file() and _is_html(p.name)]
    page_files = [p for p in files if p.name.lower().startswith('page-')]
    if page_files:
        files = page_files

    documents = []
    for ordinal, path in enumerate(sorted(files, key=lambda p: p.name), start=1):
        documents.append(PageDocument(
            ordinal=ordinal,
            name=path.name,
            label=parse_label(path.name),
            content=path.read_bytes(),
            source_dir=directory,
        ))

    return documents


def extract_archive(zip_path: Path, workspace: Path) -> List[PageDocument]:
    """Extract an archive's HTML members into workspace/pages and load them."""
    zip_path = Path(zip_path)
    pages_dir = Path(workspace) / "pages"
    pages_dir.mkdir(parents=True, exist_ok=True)

    try:
        with zipfile.ZipFile(zip_path) as zf:
            members = [
                info for info in zf.infolist()
                if not info.is_dir() and _is_html(info.filename)
            ]
            for info in members:
                name = Path(info.filename).name
                if not name or name.startswith('.'):
                    continue
                (pages_dir / name).write_bytes(zf.read(info))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError) as e:
        raise ArchiveError(f"Cannot read archive {zip_path.name}: {e}") from e

    documents = load_page_documents(pages_dir)
    if not documents:
        raise ArchiveError(f"No HTML page documents in {zip_path.name}")

    logger.info(f"Extracted {len(documents)} page documents from {zip_path.name}")
    return documents
