import hashlib
import logging
from typing import Iterable

from .schemas import DedupResult, PageDocument, RenderUnit

logger = logging.getLogger(__name__)

# Above this many duplicates only the count is logged.
MAX_LOGGED_DUPLICATES = 20


def content_hash(content: bytes) -> str:
    return hashlib.md5(content).hexdigest()


def deduplicate(documents: Iterable[PageDocument]) -> DedupResult:
    """
    Keep the first occurrence of each distinct page document.

    Documents are visited in ordinal order; a later document whose content
    hash was already seen is recorded as (duplicate_ordinal, canonical_ordinal).
    Equal hash is treated as equal content.
    """
    result = DedupResult()

    for doc in sorted(documents, key=lambda d: d.ordinal):
        digest = content_hash(doc.content)
        canonical = result.canonical_by_hash.get(digest)

        if canonical is not None:
            result.duplicates.append((doc.ordinal, canonical))
            continue

        result.canonical_by_hash[digest] = doc.ordinal
        result.units.append(RenderUnit(document=doc, hash=digest))

    if result.duplicates:
        logger.info(
            f"Found {len(result.duplicates)} duplicate page(s); "
            f"{len(result.units)} unique of {result.total_documents}"
        )
        if len(result.duplicates) <= MAX_LOGGED_DUPLICATES:
            for dup, canonical in result.duplicates:
                logger.info(f"  page {dup} duplicates page {canonical}")

    return result
