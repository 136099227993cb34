"""Metadata index resolution: trust gate, metadata checksums, primary lookup."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from mirror_core.protocol import INDEX_FILE, INDEX_SIGNATURE_FILE, PRIMARY_ROLE
from mirror_core.records import MetadataEntry, VerificationResult, mirror_path
from mirror_core.repodata import RepodataError, parse_index
from .const import VerifyError
from .crypto import SignatureAssertion, TrustEnforced, TrustPolicy, verify_detached
from .reconcile import check_file

logger = logging.getLogger(__name__)


@dataclass
class IndexResolution:
    primary: Path
    failures: list[VerificationResult] = field(default_factory=list)
    assertion: SignatureAssertion | None = None


def load_index(repodata: Path) -> tuple[bytes, list[MetadataEntry]]:
    index_path = repodata / INDEX_FILE
    logger.debug("Loading %s", index_path)
    try:
        data = index_path.read_bytes()
    except OSError as e:
        raise VerifyError("E_INDEX_UNREADABLE", f"{index_path}: {e}") from e
    try:
        return data, parse_index(data)
    except RepodataError as e:
        raise VerifyError("E_INDEX_PARSE", f"{index_path}: {e}") from e


def verify_index_signature(repodata: Path, data: bytes, policy: TrustEnforced) -> SignatureAssertion:
    sig_path = repodata / INDEX_SIGNATURE_FILE
    logger.info("Loading signature file: %s", sig_path)
    try:
        signature = sig_path.read_bytes()
    except OSError as e:
        raise VerifyError("E_SIG_MISSING", f"{sig_path}: {e}") from e
    assertion = verify_detached(data, signature, policy.keyring)
    logger.info("GPG Verified!")
    return assertion


def resolve_index(repodata: Path, base: Path, repo: str, policy: TrustPolicy) -> IndexResolution:
    """Verify repomd.xml and every metadata file it lists.

    ``repodata`` holds repomd.xml; hrefs resolve against ``base/repo``. A
    corrupt metadata file is reported and skipped, a missing primary is fatal.
    """
    data, entries = load_index(repodata)

    assertion = None
    if isinstance(policy, TrustEnforced):
        assertion = verify_index_signature(repodata, data, policy)

    failures = []
    primary = None
    for entry in entries:
        path = mirror_path(repo, entry.href)
        logger.debug("checking %s", path)
        result = check_file(base / path, path, entry.algorithm, entry.checksum, entry.size)
        if result.failed:
            failures.append(result)
            continue
        # A primary whose checksum failed cannot be trusted to list packages.
        if entry.role == PRIMARY_ROLE:
            primary = base / path

    if primary is None:
        raise VerifyError("E_PRIMARY_MISSING", str(repodata / INDEX_FILE))
    return IndexResolution(primary=primary, failures=failures, assertion=assertion)
