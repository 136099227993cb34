"""Disk-to-catalog scan: find package files the catalog no longer references."""
from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

from mirror_core.protocol import PACKAGE_SUFFIX
from mirror_core.records import Catalog, PruneDecision, PruneOutcome
from .const import VerifyError

logger = logging.getLogger(__name__)


class PruneMode(Enum):
    REPORT = "report"
    DELETE = "delete"


def _walk_error(err: OSError) -> None:
    # An unvisited subtree could hide referenced files; never guess.
    raise VerifyError("E_PRUNE_WALK", str(err))


def plan_prune(catalog: Catalog, base: Path, suffix: str = PACKAGE_SUFFIX) -> list[PruneDecision]:
    """Classify every ``suffix`` file under ``base`` by its base-relative path."""
    base = Path(base)
    decisions = []
    for dirpath, dirnames, filenames in os.walk(base, onerror=_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            if not name.endswith(suffix):
                continue
            rel = (Path(dirpath) / name).relative_to(base).as_posix()
            outcome = PruneOutcome.REFERENCED if rel in catalog else PruneOutcome.ORPHAN
            decisions.append(PruneDecision(path=rel, outcome=outcome))
    return decisions


def apply_prune(decisions: list[PruneDecision], base: Path, mode: PruneMode) -> tuple[list[PruneDecision], list[str]]:
    """Act on orphans. Returns updated decisions and paths that could not be removed."""
    if mode is PruneMode.REPORT:
        return decisions, []
    applied, failed = [], []
    for d in decisions:
        if not d.orphan:
            applied.append(d)
            continue
        try:
            (Path(base) / d.path).unlink()
        except OSError as e:
            logger.error("Unable to remove %s: %s", d.path, e)
            failed.append(d.path)
            applied.append(d)
            continue
        logger.info("Removed %s", d.path)
        applied.append(PruneDecision(path=d.path, outcome=d.outcome, removed=True))
    return applied, failed
