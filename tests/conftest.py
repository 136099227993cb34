import gzip
import hashlib
import shutil
from pathlib import Path
from types import SimpleNamespace

import pytest

REPO_NS = "http://linux.duke.edu/metadata/repo"
COMMON_NS = "http://linux.duke.edu/metadata/common"


def digest(data: bytes, algorithm: str = "sha256") -> str:
    return hashlib.new("sha1" if algorithm == "sha" else algorithm, data).hexdigest()


def primary_xml(packages) -> bytes:
    rows = []
    for p in packages:
        rows.append(
            f'<package type="rpm"><name>{p["name"]}</name><arch>x86_64</arch>'
            f'<checksum type="{p["algorithm"]}" pkgid="YES">{p["checksum"]}</checksum>'
            f'<size package="{p["size"]}" installed="{p["size"] * 3}" archive="{p["size"] * 3 + 512}"/>'
            f'<location href="{p["href"]}"/></package>'
        )
    body = "".join(rows)
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<metadata xmlns="{COMMON_NS}" xmlns:rpm="http://linux.duke.edu/metadata/rpm" '
        f'packages="{len(packages)}">{body}</metadata>'
    ).encode("utf-8")


def repomd_xml(entries) -> bytes:
    rows = []
    for e in entries:
        rows.append(
            f'<data type="{e["role"]}"><checksum type="{e["algorithm"]}">{e["checksum"]}</checksum>'
            f'<location href="{e["href"]}"/><timestamp>1646092800</timestamp>'
            f'<size>{e["size"]}</size></data>'
        )
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<repomd xmlns="{REPO_NS}" xmlns:rpm="http://linux.duke.edu/metadata/rpm">'
        f'<revision>1646092800</revision>{"".join(rows)}</repomd>'
    ).encode("utf-8")


class MirrorBuilder:
    """Lay out a repo under ``base/repo`` with packages and repodata."""

    def __init__(self, base: Path, repo: str = ""):
        self.base = base
        self.repo = repo
        self.root = base / repo if repo else base
        self.packages = []
        self.extra_metadata = []

    @property
    def repodata(self) -> Path:
        return self.root / "repodata"

    def add_package(self, href: str, content: bytes, algorithm: str = "sha256", write: bool = True,
                    checksum: str | None = None) -> dict:
        pkg = {
            "name": Path(href).name.split("-")[0],
            "href": href,
            "algorithm": algorithm,
            "checksum": checksum or digest(content, algorithm),
            "size": len(content),
        }
        self.packages.append(pkg)
        if write:
            target = self.root / href
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        return pkg

    def add_metadata(self, role: str, name: str, content: bytes, algorithm: str = "sha256"):
        self.extra_metadata.append((role, name, content, algorithm))

    def write(self, primary_name: str = "0123abcd-primary.xml.gz") -> Path:
        self.repodata.mkdir(parents=True, exist_ok=True)
        primary = gzip.compress(primary_xml(self.packages), mtime=0)
        (self.repodata / primary_name).write_bytes(primary)
        entries = [{
            "role": "primary", "href": f"repodata/{primary_name}", "algorithm": "sha256",
            "checksum": digest(primary), "size": len(primary),
        }]
        for role, name, content, algorithm in self.extra_metadata:
            (self.repodata / name).write_bytes(content)
            entries.append({
                "role": role, "href": f"repodata/{name}", "algorithm": algorithm,
                "checksum": digest(content, algorithm), "size": len(content),
            })
        (self.repodata / "repomd.xml").write_bytes(repomd_xml(entries))
        return self.repodata


@pytest.fixture
def mirror(tmp_path):
    base = tmp_path / "mirror"
    base.mkdir()
    return MirrorBuilder(base, "7/os/x86_64")


def _make_signer(home: Path, email: str):
    import gnupg

    gpg = gnupg.GPG(gnupghome=str(home))
    key = gpg.gen_key(gpg.gen_key_input(
        key_type="RSA", key_length=2048, name_real="Mirror Test", name_email=email, no_protection=True,
    ))
    assert key.fingerprint, key.stderr
    return SimpleNamespace(gpg=gpg, fingerprint=key.fingerprint, public=gpg.export_keys(key.fingerprint))


@pytest.fixture(scope="session")
def signer(tmp_path_factory):
    if shutil.which("gpg") is None:
        pytest.skip("gpg binary not available")
    return _make_signer(tmp_path_factory.mktemp("gpg"), "mirror@example.org")


@pytest.fixture(scope="session")
def stranger(tmp_path_factory):
    if shutil.which("gpg") is None:
        pytest.skip("gpg binary not available")
    return _make_signer(tmp_path_factory.mktemp("gpg"), "stranger@example.org")


def sign(who, data: bytes) -> bytes:
    signed = who.gpg.sign(data, keyid=who.fingerprint, detach=True)
    assert signed.data, signed.stderr
    return signed.data
