"""Parser for package list files (``*.lst``).

One entry per line, ``[source:]name[|condition]``. Lines starting with ``#``
are comments; ``# --- Name ---`` additionally opens a section that applies to
every following entry. Malformed lines are dropped from the parsed output and
reported through ``validate`` with their 1-based line number.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

_SECTION_RE = re.compile(r"^#\s*---\s+(?P<name>.+?)\s+---$")

DEFAULT_SOURCES = {
    "arch": "pacman",
    "ubuntu": "apt",
}


class SourceKind(enum.Enum):
    DEFAULT = "default"
    AUR = "aur"
    APT = "apt"
    OTHER = "other"


@dataclass(frozen=True)
class PackageEntry:
    name: str
    source: Optional[str] = None  # None: the distro's primary manager
    section: Optional[str] = None
    condition: Optional[str] = None
    line_no: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("PackageEntry.name must be non-empty")

    @property
    def kind(self) -> SourceKind:
        if self.source is None:
            return SourceKind.DEFAULT
        if self.source == "aur":
            return SourceKind.AUR
        if self.source == "apt":
            return SourceKind.APT
        return SourceKind.OTHER

    def effective_source(self, distro: str) -> str:
        """Concrete installer for this entry on ``distro``."""
        if self.source is not None:
            return self.source
        return default_source(distro)

    def spec(self) -> str:
        s = f"{self.source}:{self.name}" if self.source else self.name
        if self.condition:
            s += f"|{self.condition}"
        return s


@dataclass(frozen=True)
class MalformedLine:
    line_no: int
    raw: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_no}: {self.reason}: {self.raw!r}"


def default_source(distro: str) -> str:
    return DEFAULT_SOURCES.get(distro, "default")


def parse_entry(text: str) -> Tuple[Optional[PackageEntry], Optional[str]]:
    """Parse one entry string. Returns ``(entry, None)`` or ``(None, reason)``."""

    body = text.strip()
    if not body:
        return None, "empty entry"

    parts = body.split("|")
    if len(parts) > 2:
        return None, "multiple '|' separators"

    head = parts[0].strip()
    condition: Optional[str] = None
    if len(parts) == 2:
        condition = parts[1].strip().lower()
        if not condition:
            return None, "empty condition after '|'"

    source: Optional[str] = None
    if ":" in head:
        pieces = head.split(":")
        if len(pieces) != 2:
            return None, "malformed source prefix"
        source, name = pieces[0].strip().lower(), pieces[1].strip()
        if not source:
            return None, "empty source before ':'"
    else:
        name = head

    if not name:
        return None, "empty package name"

    return PackageEntry(name=name, source=source, condition=condition), None


def _scan(lines: Iterable[str]) -> Tuple[List[PackageEntry], List[MalformedLine]]:
    entries: List[PackageEntry] = []
    errors: List[MalformedLine] = []
    section: Optional[str] = None

    for line_no, raw in enumerate(lines, start=1):
        raw = raw.rstrip("\r\n")
        text = raw.strip()
        if not text:
            continue
        if text.startswith("#"):
            m = _SECTION_RE.match(text)
            if m:
                section = m.group("name")
            continue

        entry, reason = parse_entry(text)
        if entry is None:
            errors.append(MalformedLine(line_no=line_no, raw=raw, reason=reason or "malformed"))
            continue
        entries.append(
            PackageEntry(
                name=entry.name,
                source=entry.source,
                section=section,
                condition=entry.condition,
                line_no=line_no,
            )
        )

    return entries, errors


def parse(lines: Iterable[str]) -> List[PackageEntry]:
    """Entries in file order; malformed lines are skipped."""
    return _scan(lines)[0]


def validate(lines: Iterable[str]) -> List[MalformedLine]:
    """Every malformed line, in file order (never stops at the first)."""
    return _scan(lines)[1]


def parse_with_errors(lines: Sequence[str]) -> Tuple[List[PackageEntry], List[MalformedLine]]:
    return _scan(lines)
