"""Mirror Check - full verification run over one mirrored repository."""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from mirror_core.protocol import DEFAULT_KEYRING, DEFAULT_MAX_WORKERS, REPODATA_DIR
from mirror_core.records import Outcome, Problem, RunReport
from .catalog import build_catalog, supplementary_catalogs
from .const import ERRORS, VerifyError
from .crypto import SignatureAssertion, TrustDisabled, TrustEnforced, TrustPolicy, open_keyring
from .index import resolve_index
from .prune import PruneMode, apply_prune, plan_prune
from .reconcile import reconcile

logger = logging.getLogger(__name__)

Emit = Callable[[str], None]


def default_workers() -> int:
    return max(1, min(DEFAULT_MAX_WORKERS, os.cpu_count() or 1))


@dataclass(frozen=True)
class VerifyConfig:
    base: Path = Path(".")
    repo: str = ""
    repodata: Path | None = None
    keyring: Path = Path(DEFAULT_KEYRING)
    insecure: bool = False
    multi: bool = False
    prune: PruneMode | None = None
    workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self):
        # "/7/os/x86_64/" and "7/os/x86_64" name the same repo.
        object.__setattr__(self, "repo", self.repo.strip("/"))
        object.__setattr__(self, "base", Path(self.base))
        object.__setattr__(self, "keyring", Path(self.keyring))
        if self.repodata is not None:
            object.__setattr__(self, "repodata", Path(self.repodata))

    @property
    def repodata_dir(self) -> Path:
        if self.repodata is not None:
            return self.repodata
        return self.base / self.repo / REPODATA_DIR


@contextmanager
def trust_policy(config: VerifyConfig) -> Iterator[TrustPolicy]:
    if config.insecure:
        logger.warning("Signature checks disabled: repository metadata is NOT authenticated")
        yield TrustDisabled()
        return
    with open_keyring(config.keyring) as keyring:
        yield TrustEnforced(keyring)


def _signer_summary(assertion: SignatureAssertion) -> dict:
    return {
        "key_id": assertion.key_id,
        "fingerprint": assertion.signer.fingerprint,
        "primary_key_id": assertion.signer.primary_key_id,
        "signed_at": assertion.signed_at.isoformat() if assertion.signed_at else None,
        "hash_algorithm": assertion.hash_algorithm,
    }


def _problem_for(result) -> Problem:
    code = "E_FILE_UNREADABLE" if result.outcome is Outcome.UNREADABLE else "E_CHECKSUM_MISMATCH"
    return Problem(code=code, message=ERRORS[code], path=result.path)


def verify_mirror(config: VerifyConfig, emit: Emit, notify: Emit | None = None) -> RunReport:
    """Run every stage and return the merged report.

    ``emit`` receives one line per failed file; ``notify`` receives orphan
    lines in report-only prune mode. Fatal conditions raise VerifyError.
    """
    report = RunReport()

    with trust_policy(config) as policy:
        resolution = resolve_index(config.repodata_dir, config.base, config.repo, policy)
    for result in resolution.failures:
        emit(result.report_line())
        report.failures.append(result)
        report.problems.append(_problem_for(result))
    if resolution.assertion is not None:
        report.signer = _signer_summary(resolution.assertion)
        if resolution.assertion.ambiguous:
            report.warnings.append(f"more than one public key matches 0x{resolution.assertion.key_id}")

    extra = supplementary_catalogs(config.repodata_dir, resolution.primary) if config.multi else []
    catalog = build_catalog(resolution.primary, config.repo, extra)
    report.sources = list(catalog.sources)
    report.warnings.extend(f"duplicate location in the primary package list: {p}" for p in catalog.duplicates)
    report.warnings.extend(f"checksum disagreement between package lists: {p}" for p in catalog.conflicts)

    # The two scans share only the frozen catalog.
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="prune") as side:
        planned = side.submit(plan_prune, catalog, config.base) if config.prune else None
        results = reconcile(catalog, config.base, max_workers=config.workers)
        decisions = planned.result() if planned is not None else []

    for result in results:
        if result.failed:
            emit(result.report_line())
            report.failures.append(result)
            report.problems.append(_problem_for(result))

    if config.prune:
        logger.info("Scanned %s for unused packages: %d found", config.base, sum(d.orphan for d in decisions))
        if config.prune is PruneMode.REPORT and notify is not None:
            for d in decisions:
                if d.orphan:
                    notify(f"- {config.base / d.path}")
        decisions, failed = apply_prune(decisions, config.base, config.prune)
        report.decisions = decisions
        for path in failed:
            report.problems.append(Problem(code="E_PRUNE_REMOVE", message=ERRORS["E_PRUNE_REMOVE"], path=path))

    logger.info(
        "%d packages checked, %d files failed, %d orphans",
        len(results), len(report.failures), len(report.orphans),
    )
    return report


def fatal_report(err: VerifyError) -> RunReport:
    report = RunReport()
    report.problems.append(Problem(code=err.code, message=err.message, detail=err.detail))
    return report
