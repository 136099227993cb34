"""Catalog-to-disk reconciliation: every catalog entry is hashed on disk."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from mirror_core.checksums import UnsupportedChecksumError, checksum_matches
from mirror_core.records import Catalog, Outcome, PackageRecord, VerificationResult

logger = logging.getLogger(__name__)


def check_file(location: Path, path: str, algorithm: str, checksum: str, size) -> VerificationResult:
    """Hash one file with its declared algorithm and classify it."""
    try:
        outcome = Outcome.OK if checksum_matches(location, algorithm, checksum) else Outcome.MISMATCH
    except UnsupportedChecksumError as e:
        logger.warning("%s: %s", path, e)
        outcome = Outcome.MISMATCH
    except OSError as e:
        logger.debug("%s: %s", path, e)
        outcome = Outcome.UNREADABLE
    if outcome is Outcome.OK:
        logger.debug("passed %s", path)
    return VerificationResult(path=path, checksum=checksum, algorithm=algorithm, size=str(size), outcome=outcome)


def check_record(base: Path, path: str, record: PackageRecord) -> VerificationResult:
    return check_file(base / path, path, record.algorithm, record.checksum, record.package_size)


def reconcile(catalog: Catalog, base: Path, max_workers: int = 1) -> list[VerificationResult]:
    """Verify every catalog entry under ``base``.

    Results come back in sorted path order whatever the pool size, so the
    report is identical between runs over an unchanged mirror.
    """
    entries = list(catalog.items())
    if max_workers <= 1:
        return [check_record(base, path, record) for path, record in entries]
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="reconcile") as pool:
        return list(pool.map(lambda e: check_record(base, *e), entries))
