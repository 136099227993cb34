from mirror_core.records import Catalog, Outcome, PackageRecord
from mirror_verify.reconcile import check_file, reconcile

from conftest import digest


def _catalog(records):
    return Catalog.freeze({path: rec for path, rec in records})


def _rec(href, checksum, algorithm="sha256", size="100"):
    return PackageRecord(name="x", href=href, checksum=checksum, algorithm=algorithm, package_size=size)


def test_ok_mismatch_unreadable(tmp_path):
    (tmp_path / "P").mkdir()
    (tmp_path / "P/good.rpm").write_bytes(b"good")
    (tmp_path / "P/bad.rpm").write_bytes(b"tampered")
    catalog = _catalog([
        ("P/good.rpm", _rec("P/good.rpm", digest(b"good"))),
        ("P/bad.rpm", _rec("P/bad.rpm", digest(b"original"))),
        ("P/gone.rpm", _rec("P/gone.rpm", digest(b"gone"))),
    ])
    outcomes = {r.path: r.outcome for r in reconcile(catalog, tmp_path)}
    assert outcomes == {
        "P/good.rpm": Outcome.OK,
        "P/bad.rpm": Outcome.MISMATCH,
        "P/gone.rpm": Outcome.UNREADABLE,
    }


def test_report_line_carries_declared_checksum(tmp_path):
    (tmp_path / "x.rpm").write_bytes(b"changed")
    declared = digest(b"original", "sha512")
    result = check_file(tmp_path / "x.rpm", "repo/x.rpm", "sha512", declared, "8")
    assert result.outcome is Outcome.MISMATCH
    assert result.report_line() == "{sha512}%s 8 repo/x.rpm" % declared


def test_algorithm_is_per_record(tmp_path):
    (tmp_path / "a.rpm").write_bytes(b"a")
    (tmp_path / "b.rpm").write_bytes(b"b")
    catalog = _catalog([
        ("a.rpm", _rec("a.rpm", digest(b"a", "md5"), "md5")),
        ("b.rpm", _rec("b.rpm", digest(b"b", "sha1"), "sha")),
    ])
    assert all(r.outcome is Outcome.OK for r in reconcile(catalog, tmp_path))


def test_unknown_algorithm_is_a_mismatch(tmp_path):
    (tmp_path / "a.rpm").write_bytes(b"a")
    result = check_file(tmp_path / "a.rpm", "a.rpm", "crc32", "e8b7be43", "1")
    assert result.outcome is Outcome.MISMATCH


def test_parallel_order_matches_serial(tmp_path):
    records = []
    for i in range(40):
        name = f"p{i:02d}.rpm"
        (tmp_path / name).write_bytes(str(i).encode())
        checksum = digest(str(i).encode()) if i % 3 else "0" * 64
        records.append((name, _rec(name, checksum)))
    catalog = _catalog(reversed(records))
    serial = reconcile(catalog, tmp_path, max_workers=1)
    parallel = reconcile(catalog, tmp_path, max_workers=6)
    assert serial == parallel
    assert [r.path for r in serial] == sorted(r.path for r in serial)
