from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple


@dataclass(frozen=True)
class PageArtifact:
    """A one-page PDF written into the archive workspace."""
    ordinal: int
    name: str
    path: Path


@dataclass
class RenderResult:
    artifacts: List[PageArtifact] = field(default_factory=list)
    dropped: List[Tuple[int, str]] = field(default_factory=list)
    workers: int = 0
    duration_seconds: float = 0.0

    @property
    def rendered(self) -> int:
        return len(self.artifacts)
