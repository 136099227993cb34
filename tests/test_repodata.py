import bz2
import gzip
import lzma

import pytest
import zstandard

from conftest import primary_xml, repomd_xml
from mirror_core.repodata import RepodataError, iter_packages, parse_index, read_packages

PKG = {"name": "bash", "href": "Packages/bash-5.1-1.x86_64.rpm", "algorithm": "sha256", "checksum": "ab" * 32, "size": 10}


def test_parse_index_entries_in_order():
    data = repomd_xml([
        {"role": "primary", "href": "repodata/p.xml.gz", "algorithm": "sha256", "checksum": "aa", "size": 12},
        {"role": "filelists", "href": "repodata/f.xml.gz", "algorithm": "sha", "checksum": "bb", "size": 7},
    ])
    entries = parse_index(data)
    assert [e.role for e in entries] == ["primary", "filelists"]
    assert entries[1].algorithm == "sha"
    assert entries[0].size == 12
    assert entries[0].href == "repodata/p.xml.gz"


def test_parse_index_without_namespace():
    data = b'<repomd><data type="primary"><checksum type="md5">cc</checksum><location href="x.xml"/></data></repomd>'
    (entry,) = parse_index(data)
    assert entry.size == 0
    assert entry.checksum == "cc"


@pytest.mark.parametrize("data", [
    b"not xml at all",
    b"<metadata/>",
    b'<repomd><data type="primary"><location href="x"/></data></repomd>',
    b'<repomd><data type="primary"><checksum type="md5">cc</checksum><location href="x"/><size>big</size></data></repomd>',
])
def test_parse_index_rejects_malformed(data):
    with pytest.raises(RepodataError):
        parse_index(data)


@pytest.mark.parametrize("suffix,compress", [
    (".xml", lambda b: b),
    (".xml.gz", gzip.compress),
    (".xml.bz2", bz2.compress),
    (".xml.xz", lzma.compress),
])
def test_catalog_compression(tmp_path, suffix, compress):
    path = tmp_path / f"primary{suffix}"
    path.write_bytes(compress(primary_xml([PKG])))
    (rec,) = read_packages(path)
    assert rec.name == "bash"
    assert rec.href == PKG["href"]
    assert rec.package_size == "10"
    assert rec.installed_size == "30"
    assert rec.arch == "x86_64"


def test_truncated_catalog(tmp_path):
    path = tmp_path / "primary.xml.gz"
    path.write_bytes(gzip.compress(primary_xml([PKG] * 3))[:-20])
    with pytest.raises(RepodataError):
        list(iter_packages(path))


def test_zstd_catalog(tmp_path):
    path = tmp_path / "primary.xml.zst"
    path.write_bytes(zstandard.ZstdCompressor().compress(primary_xml([PKG])))
    assert [r.href for r in read_packages(path)] == [PKG["href"]]


def test_corrupt_zstd_catalog(tmp_path):
    path = tmp_path / "primary.xml.zst"
    path.write_bytes(b"\x28\xb5\x2f\xfd" + b"\x00" * 16)
    with pytest.raises(RepodataError):
        read_packages(path)
