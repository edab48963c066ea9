from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class PageDocument:
    """One extracted page document. Ordinal alone decides final page order."""
    ordinal: int
    name: str
    label: str
    content: bytes = field(repr=False)
    source_dir: Optional[Path] = None


@dataclass(frozen=True)
class RenderUnit:
    document: PageDocument
    hash: str

    @property
    def ordinal(self) -> int:
        return self.document.ordinal


@dataclass
class DedupResult:
    units: List[RenderUnit] = field(default_factory=list)
    duplicates: List[Tuple[int, int]] = field(default_factory=list)
    canonical_by_hash: Dict[str, int] = field(default_factory=dict)

    @property
    def total_documents(self) -> int:
        return len(self.units) + len(self.duplicates)
