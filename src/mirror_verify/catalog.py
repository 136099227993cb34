"""Catalog building: primary package list plus optional supplementary lists."""
from __future__ import annotations

import logging
from pathlib import Path

from mirror_core.protocol import SUPPLEMENTARY_CATALOG_SUFFIX
from mirror_core.records import Catalog, PackageRecord, mirror_path
from mirror_core.repodata import RepodataError, iter_packages
from .const import VerifyError

logger = logging.getLogger(__name__)


def _read(path: Path):
    try:
        return list(iter_packages(path))
    except RepodataError as e:
        raise VerifyError("E_CATALOG_PARSE", str(e)) from e


def supplementary_catalogs(repodata: Path, primary: Path) -> list[Path]:
    """Extra package lists in ``repodata``, excluding the signed primary."""
    try:
        candidates = sorted(p for p in repodata.iterdir() if p.is_file())
    except OSError as e:
        raise VerifyError("E_CATALOG_PARSE", f"{repodata}: {e}") from e
    primary = primary.resolve()
    return [
        p for p in candidates
        if p.name.endswith(SUPPLEMENTARY_CATALOG_SUFFIX) and p.resolve() != primary
    ]


def build_catalog(primary: Path, repo: str, supplementary: list[Path] | None = None) -> Catalog:
    """Merge catalogs first-seen-wins.

    Supplementary lists are not covered by the index signature; they only add
    paths and never replace a checksum already known.
    """
    logger.debug("Loading %s", primary)
    records: dict[str, PackageRecord] = {}
    conflicts: list[str] = []
    duplicates: list[str] = []
    for pkg in _read(primary):
        path = mirror_path(repo, pkg.href)
        if path in records:
            logger.warning("Duplicate location in %s: %s", primary.name, path)
            duplicates.append(path)
            continue
        records[path] = pkg

    sources = [str(primary)]
    for extra in supplementary or ():
        logger.debug("Loading %s", extra)
        for pkg in _read(extra):
            path = mirror_path(repo, pkg.href)
            known = records.get(path)
            if known is None:
                records[path] = pkg
            elif known.checksum.lower() != pkg.checksum.lower():
                logger.warning("File has been changed, odd: %s (%s)", path, extra.name)
                conflicts.append(path)
        sources.append(str(extra))

    logger.info("Catalog: %d packages from %d package lists", len(records), len(sources))
    return Catalog.freeze(records, sources=sources, conflicts=conflicts, duplicates=duplicates)
