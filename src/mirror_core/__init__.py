"""Mirror Check Core - Shared repodata layout, records and checksums."""
from .checksums import ChecksumAlgorithm, UnsupportedChecksumError, checksum_matches, file_checksum
from .records import (
    Catalog,
    MetadataEntry,
    Outcome,
    PackageRecord,
    PruneDecision,
    PruneOutcome,
    RunReport,
    VerificationResult,
    mirror_path,
)
from .repodata import RepodataError, iter_packages, parse_index, read_packages

__all__ = [
    "ChecksumAlgorithm", "UnsupportedChecksumError", "checksum_matches", "file_checksum",
    "Catalog", "MetadataEntry", "Outcome", "PackageRecord", "PruneDecision", "PruneOutcome",
    "RunReport", "VerificationResult", "mirror_path",
    "RepodataError", "iter_packages", "parse_index", "read_packages",
]
