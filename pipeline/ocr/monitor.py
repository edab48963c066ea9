"""
OCR progress monitor.

A pure line consumer: feed it the OCR tool's merged output one line at a
time and it tracks the phase (idle -> processing -> finalizing) and the
number of page-start markers seen. It never touches the subprocess, so it
can be driven from a reader queue or directly from a list of lines.
"""

import re
from dataclasses import dataclass
from typing import Optional

PHASE_IDLE = "idle"
PHASE_PROCESSING = "processing"
PHASE_FINALIZING = "finalizing"

# Banner announcing the page count; it starts processing but is not a page
START_PATTERN = re.compile(r"Start processing \d+ pages?\b")
PAGE_MARKERS = ("Processing page",)
# ocrmypdf -v1 prefixes per-page records with the page number
PAGE_PREFIX_PATTERN = re.compile(r'^\s+(\d+)\s+page\b')

FINALIZE_MARKERS = (
    "Postprocessing",
    "Optimize",
    "Linearizing",
    "Output file is",
    "Image optimization",
)

MESSAGE_MARKERS = ("INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class OcrEvent:
    kind: str  # page | finalizing | message | heartbeat
    phase: str
    pages_seen: int
    line: str = ""
    quiet_seconds: float = 0.0

    def describe(self) -> str:
        if self.kind == "page":
            return f"Processing page {self.pages_seen}..."
        if self.kind == "heartbeat":
            return (
                f"Still working ({self.phase}, {self.pages_seen} pages seen, "
                f"no output for {self.quiet_seconds:.0f}s)"
            )
        return self.line


class OcrProgressMonitor:

    def __init__(self):
        self.phase = PHASE_IDLE
        self.pages_seen = 0
        self.lines_seen = 0

    def _event(self, kind: str, line: str = "", quiet_seconds: float = 0.0) -> OcrEvent:
        return OcrEvent(
            kind=kind,
            phase=self.phase,
            pages_seen=self.pages_seen,
            line=line,
            quiet_seconds=quiet_seconds,
        )

    def feed(self, line: str) -> Optional[OcrEvent]:
        """Consume one output line. Returns an event for marker and message lines."""
        line = line.rstrip("\r\n")
        self.lines_seen += 1

        if START_PATTERN.search(line):
            if self.phase == PHASE_IDLE:
                self.phase = PHASE_PROCESSING
            return self._event("message", line)

        if any(marker in line for marker in PAGE_MARKERS) or PAGE_PREFIX_PATTERN.match(line):
            self.pages_seen += 1
            if self.phase == PHASE_IDLE:
                self.phase = PHASE_PROCESSING
            return self._event("page", line)

        if any(marker in line for marker in FINALIZE_MARKERS):
            self.phase = PHASE_FINALIZING
            return self._event("finalizing", line)

        if any(marker in line for marker in MESSAGE_MARKERS):
            return self._event("message", line)

        return None

    def heartbeat(self, quiet_seconds: float) -> OcrEvent:
        return self._event("heartbeat", quiet_seconds=quiet_seconds)
