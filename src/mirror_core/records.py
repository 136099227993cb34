"""Mirror Check - Metadata rows, catalog snapshot and per-file outcomes."""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping


@dataclass(frozen=True)
class MetadataEntry:
    """One ``<data>`` row of repomd.xml."""

    role: str
    href: str
    checksum: str
    algorithm: str
    size: int = 0


@dataclass(frozen=True)
class PackageRecord:
    """One ``<package>`` of a primary catalog."""

    name: str
    href: str
    checksum: str
    algorithm: str
    package_size: str = ""
    installed_size: str = ""
    archive_size: str = ""
    arch: str = ""


def mirror_path(repo: str, href: str) -> str:
    """Normalized mirror-relative path for an href inside ``repo``."""
    return posixpath.normpath(posixpath.join(repo, href.lstrip("/")))


@dataclass(frozen=True)
class Catalog:
    """Read-only mapping of mirror-relative path to the record that owns it."""

    records: Mapping[str, PackageRecord]
    sources: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    duplicates: tuple[str, ...] = ()

    @classmethod
    def freeze(cls, records: dict[str, PackageRecord], sources=(), conflicts=(), duplicates=()) -> "Catalog":
        return cls(MappingProxyType(dict(records)), tuple(sources), tuple(conflicts), tuple(duplicates))

    def __contains__(self, path: str) -> bool:
        return path in self.records

    def __len__(self) -> int:
        return len(self.records)

    def get(self, path: str) -> PackageRecord | None:
        return self.records.get(path)

    def items(self) -> Iterator[tuple[str, PackageRecord]]:
        """Entries in sorted path order."""
        for path in sorted(self.records):
            yield path, self.records[path]


class Outcome(Enum):
    OK = "ok"
    MISMATCH = "mismatch"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class VerificationResult:
    path: str
    checksum: str
    algorithm: str
    size: str
    outcome: Outcome

    @property
    def failed(self) -> bool:
        return self.outcome is not Outcome.OK

    def report_line(self) -> str:
        # Same shape for missing, truncated and altered files.
        return f"{{{self.algorithm}}}{self.checksum} {self.size} {self.path}"


class PruneOutcome(Enum):
    REFERENCED = "referenced"
    ORPHAN = "orphan"


@dataclass(frozen=True)
class PruneDecision:
    path: str
    outcome: PruneOutcome
    removed: bool = False

    @property
    def orphan(self) -> bool:
        return self.outcome is PruneOutcome.ORPHAN


@dataclass
class Problem:
    """A reported (non-fatal) or fatal condition in the run summary."""

    code: str
    message: str
    path: str | None = None
    detail: str | None = None

    def as_dict(self) -> dict:
        d = {"code": self.code, "message": self.message}
        if self.path is not None:
            d["path"] = self.path
        if self.detail is not None:
            d["detail"] = self.detail
        return d


@dataclass
class RunReport:
    """Everything one run found, merged in the main thread."""

    failures: list[VerificationResult] = field(default_factory=list)
    decisions: list[PruneDecision] = field(default_factory=list)
    problems: list[Problem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    signer: dict | None = None

    @property
    def status(self) -> str:
        return "FAIL" if self.problems else "PASS"

    @property
    def ok(self) -> bool:
        return not self.problems

    @property
    def orphans(self) -> list[PruneDecision]:
        return [d for d in self.decisions if d.orphan]

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "error_count": len(self.problems),
            "errors": [p.as_dict() for p in self.problems],
            "warnings": list(self.warnings),
            "failed_files": len(self.failures),
            "sources": list(self.sources),
            "signer": self.signer,
        }
