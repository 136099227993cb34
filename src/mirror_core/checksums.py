"""Mirror Check - Checksum dispatch over the digest families used by repodata."""
from __future__ import annotations

import hashlib
from enum import Enum
from pathlib import Path

from .protocol import READ_CHUNK_SIZE


class UnsupportedChecksumError(ValueError):
    """Raised for a checksum type tag outside the known digest families."""


class ChecksumAlgorithm(Enum):
    MD5 = "md5"
    SHA1 = "sha1"
    SHA224 = "sha224"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @classmethod
    def from_tag(cls, tag: str) -> "ChecksumAlgorithm":
        """Map a repodata ``type`` attribute to an algorithm.

        Old createrepo releases write ``sha`` for SHA-1.
        """
        key = (tag or "").strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedChecksumError(f"unsupported checksum type: {tag!r}") from None

    def new(self):
        return _CONSTRUCTORS[self]()


_ALIASES = {"sha": "sha1"}

_CONSTRUCTORS = {
    ChecksumAlgorithm.MD5: hashlib.md5,
    ChecksumAlgorithm.SHA1: hashlib.sha1,
    ChecksumAlgorithm.SHA224: hashlib.sha224,
    ChecksumAlgorithm.SHA256: hashlib.sha256,
    ChecksumAlgorithm.SHA384: hashlib.sha384,
    ChecksumAlgorithm.SHA512: hashlib.sha512,
}


def file_checksum(path: Path, algorithm: ChecksumAlgorithm, chunk_size: int = READ_CHUNK_SIZE) -> str:
    """Hex digest of a file, read in chunks."""
    h = algorithm.new()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def checksum_matches(path: Path, tag: str, expected: str) -> bool:
    """True when the file at ``path`` hashes to ``expected`` under ``tag``.

    Raises OSError when the file cannot be read and UnsupportedChecksumError
    for an unknown tag.
    """
    algorithm = ChecksumAlgorithm.from_tag(tag)
    return file_checksum(path, algorithm) == expected.strip().lower()
