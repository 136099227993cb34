"""Mirror Check - repomd.xml and primary catalog readers."""
from __future__ import annotations

import bz2
import gzip
import lzma
import zlib
from pathlib import Path
from typing import BinaryIO, Iterator

import zstandard
from lxml import etree

from .records import MetadataEntry, PackageRecord

# Repodata is untrusted input until its checksum is verified.
_PARSER_KW = {"resolve_entities": False, "no_network": True, "huge_tree": True}


def _zstd_open(path, mode="rb"):
    return zstandard.ZstdDecompressor().stream_reader(open(path, mode), closefd=True)


_OPENERS = {
    ".gz": gzip.open,
    ".bz2": bz2.open,
    ".xz": lzma.open,
    ".zst": _zstd_open,
}


class RepodataError(ValueError):
    """Index or catalog document could not be read or is malformed."""


def _child(el, name: str):
    return next(el.iterchildren(f"{{*}}{name}"), None)


def _text(el, name: str) -> str:
    child = _child(el, name)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def parse_index(data: bytes) -> list[MetadataEntry]:
    """Parse repomd.xml bytes into its metadata entries, in document order."""
    try:
        root = etree.fromstring(data, parser=etree.XMLParser(**_PARSER_KW))
    except etree.XMLSyntaxError as e:
        raise RepodataError(f"index is not valid XML: {e}") from e
    if etree.QName(root).localname != "repomd":
        raise RepodataError(f"unexpected index root element <{etree.QName(root).localname}>")

    entries = []
    for data_el in root.iterchildren("{*}data"):
        role = data_el.get("type", "")
        checksum_el = _child(data_el, "checksum")
        location_el = _child(data_el, "location")
        if checksum_el is None or location_el is None or not location_el.get("href"):
            raise RepodataError(f"index entry {role!r} has no checksum or location")
        size = _text(data_el, "size")
        try:
            declared = int(size) if size else 0
        except ValueError:
            raise RepodataError(f"index entry {role!r} has a non-numeric size {size!r}") from None
        entries.append(MetadataEntry(
            role=role,
            href=location_el.get("href"),
            checksum=(checksum_el.text or "").strip(),
            algorithm=checksum_el.get("type", ""),
            size=declared,
        ))
    return entries


def open_metadata(path: Path) -> BinaryIO:
    """Open a metadata file, decompressing by suffix."""
    path = Path(path)
    opener = _OPENERS.get(path.suffix, open)
    return opener(path, "rb")


def _package_record(el) -> PackageRecord:
    checksum_el = _child(el, "checksum")
    location_el = _child(el, "location")
    name = _text(el, "name")
    if checksum_el is None or location_el is None or not location_el.get("href"):
        raise RepodataError(f"package {name!r} has no checksum or location")
    size_el = _child(el, "size")
    sizes = size_el.attrib if size_el is not None else {}
    return PackageRecord(
        name=name,
        href=location_el.get("href"),
        checksum=(checksum_el.text or "").strip(),
        algorithm=checksum_el.get("type", ""),
        package_size=sizes.get("package", ""),
        installed_size=sizes.get("installed", ""),
        archive_size=sizes.get("archive", ""),
        arch=_text(el, "arch"),
    )


def read_packages(path: Path) -> list[PackageRecord]:
    """All package records of a (possibly compressed) primary catalog."""
    return list(iter_packages(path))


def iter_packages(path: Path) -> Iterator[PackageRecord]:
    """Stream package records; large catalogs are parsed incrementally."""
    try:
        with open_metadata(path) as stream:
            for _, el in etree.iterparse(stream, events=("end",), tag="{*}package", **_PARSER_KW):
                record = _package_record(el)
                # Drop parsed siblings so memory stays flat.
                el.clear(keep_tail=True)
                while el.getprevious() is not None:
                    del el.getparent()[0]
                yield record
    except etree.XMLSyntaxError as e:
        raise RepodataError(f"{Path(path).name}: catalog is not valid XML: {e}") from e
    except (OSError, EOFError, lzma.LZMAError, zlib.error, zstandard.ZstdError) as e:
        raise RepodataError(f"{Path(path).name}: {e}") from e
