"""OpenPGP trust for repository metadata.

Keys are imported into a private, throwaway GnuPG home so the operator's own
keyring never takes part in a verification run.
"""
from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import gnupg

from mirror_core.protocol import KEY_FILE_SUFFIXES
from .const import VerifyError

logger = logging.getLogger(__name__)

SIGN_USAGE = "s"

# OpenPGP hash algorithm ids (RFC 4880 9.4, RFC 9580 9.5)
HASH_ALGORITHMS = {
    "1": "MD5", "2": "SHA1", "3": "RIPEMD160", "8": "SHA256", "9": "SHA384",
    "10": "SHA512", "11": "SHA224", "12": "SHA3-256", "14": "SHA3-512",
}


def normalize_key_id(key_id: str) -> str:
    """64-bit key id, upper-case hex. Fingerprints reduce to their tail."""
    k = key_id.strip().upper()
    if k.startswith("0X"):
        k = k[2:]
    return k[-16:]


@dataclass(frozen=True)
class SigningIdentity:
    key_id: str
    fingerprint: str
    capabilities: str
    primary_key_id: str
    uids: tuple[str, ...] = ()

    def can(self, usage: str) -> bool:
        # Lower-case letters are this key's own usage flags; upper-case ones
        # summarize the whole key and must not grant rights to a subkey.
        return usage in self.capabilities


class TrustedKeyring:
    """Immutable set of identities plus the GnuPG home that holds them."""

    def __init__(self, gpg: gnupg.GPG, identities: tuple[SigningIdentity, ...]):
        self._gpg = gpg
        self.identities = tuple(identities)

    def __len__(self) -> int:
        return len(self.identities)

    @property
    def gpg(self) -> gnupg.GPG:
        return self._gpg

    @property
    def signing_identities(self) -> tuple[SigningIdentity, ...]:
        return tuple(i for i in self.identities if i.can(SIGN_USAGE))

    def keys_by_id_usage(self, key_id: str, usage: str = SIGN_USAGE) -> list[SigningIdentity]:
        wanted = normalize_key_id(key_id)
        return [i for i in self.identities if i.key_id == wanted and i.can(usage)]


@dataclass(frozen=True)
class TrustEnforced:
    keyring: TrustedKeyring


@dataclass(frozen=True)
class TrustDisabled:
    pass


TrustPolicy = TrustEnforced | TrustDisabled


def key_files(source: Path) -> list[Path]:
    """Key files named by a keyring source: the file itself, or a directory scan."""
    source = Path(source)
    if source.is_dir():
        found = []
        for dirpath, dirnames, filenames in os.walk(source, onerror=_raise):
            dirnames.sort()
            for name in sorted(filenames):
                if name.endswith(KEY_FILE_SUFFIXES):
                    found.append(Path(dirpath) / name)
        return found
    if source.is_file():
        return [source]
    raise VerifyError("E_KEYRING_LOAD", f"{source}: no such file or directory")


def _raise(err: OSError) -> None:
    raise VerifyError("E_KEYRING_LOAD", str(err))


def _identities(listing) -> Iterator[SigningIdentity]:
    for key in listing:
        primary = normalize_key_id(key["keyid"])
        uids = tuple(key.get("uids") or ())
        yield SigningIdentity(
            key_id=primary,
            fingerprint=(key.get("fingerprint") or "").upper(),
            capabilities=key.get("cap") or "",
            primary_key_id=primary,
            uids=uids,
        )
        for sub in key.get("subkeys") or ():
            # [keyid, capabilities, fingerprint, keygrip]
            yield SigningIdentity(
                key_id=normalize_key_id(sub[0]),
                fingerprint=(sub[2] or "").upper() if len(sub) > 2 else "",
                capabilities=sub[1] or "",
                primary_key_id=primary,
                uids=uids,
            )


def _import_key_file(gpg: gnupg.GPG, path: Path) -> int:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise VerifyError("E_KEYRING_LOAD", f"{path}: {e}") from e
    result = gpg.import_keys(data)
    if not result.fingerprints:
        detail = (result.stderr or "").strip().splitlines()
        raise VerifyError("E_KEYRING_LOAD", f"{path}: {detail[-1] if detail else 'no keys found'}")
    logger.debug("Loaded %d keys from %s", len(result.fingerprints), path)
    return len(result.fingerprints)


@contextmanager
def open_keyring(source: Path, gpgbinary: str = "gpg") -> Iterator[TrustedKeyring]:
    """Build a TrustedKeyring from a key file or a directory of key files.

    Any file that fails to load aborts the whole run; a partially trusted
    keyring is a misconfiguration.
    """
    with tempfile.TemporaryDirectory(prefix="mirror-keyring-", ignore_cleanup_errors=True) as home:
        gpg = gnupg.GPG(gpgbinary=gpgbinary, gnupghome=home)
        for path in key_files(source):
            _import_key_file(gpg, path)
        keyring = TrustedKeyring(gpg, tuple(_identities(gpg.list_keys())))
        if not keyring.signing_identities:
            raise VerifyError("E_KEYRING_EMPTY", f"{source}: {len(keyring)} keys, none usable for signing")
        logger.info("Keyring %s: %d signing keys", source, len(keyring.signing_identities))
        yield keyring


@dataclass(frozen=True)
class SignatureAssertion:
    key_id: str
    signed_at: datetime | None
    hash_algorithm: str | None
    signer: SigningIdentity
    ambiguous: bool = False


def _timestamp(value) -> datetime | None:
    if value and str(value).isdigit():
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    return None


def _hash_algorithm(status: str | None) -> str | None:
    """Digest algorithm named by the VALIDSIG or ERRSIG status line."""
    for line in (status or "").splitlines():
        parts = line.split()
        if len(parts) < 2 or parts[0] != "[GNUPG:]":
            continue
        # VALIDSIG <fpr> <date> <ts> <expire> <ver> <reserved> <pk-algo> <hash-algo> ...
        # ERRSIG <keyid> <pk-algo> <hash-algo> ...
        index = {"VALIDSIG": 7, "ERRSIG": 2}.get(parts[1])
        args = parts[2:]
        if index is not None and len(args) > index:
            return HASH_ALGORITHMS.get(args[index], f"id {args[index]}")
    return None


def verify_detached(data: bytes, signature: bytes, keyring: TrustedKeyring) -> SignatureAssertion:
    """Check an armored detached signature over ``data`` against ``keyring``.

    Raises VerifyError unless the issuer is a signing key in the keyring and
    GnuPG accepts the signature over the payload.
    """
    with tempfile.NamedTemporaryFile(suffix=".asc") as sig:
        sig.write(signature)
        sig.flush()
        result = keyring.gpg.verify_data(sig.name, data)

    key_id = (result.key_id or "").strip()
    signed_at = _timestamp(result.sig_timestamp or result.timestamp)
    if not key_id and signed_at is None:
        raise VerifyError("E_SIG_DECODE", result.status or "no signature packet")
    if not key_id.strip("0"):
        raise VerifyError("E_SIG_NO_ISSUER")

    key_id = normalize_key_id(key_id)
    hash_algorithm = _hash_algorithm(result.stderr)
    logger.info(
        "Signed by 0x%s at %s using %s", key_id,
        signed_at.isoformat() if signed_at else "unknown time", hash_algorithm or "unknown digest",
    )

    keys = keyring.keys_by_id_usage(key_id)
    if not keys:
        raise VerifyError("E_SIG_NO_KEY", f"0x{key_id}")
    if len(keys) > 1:
        logger.warning("More than one public key found matching KeyID 0x%s", key_id)

    if not result.valid:
        raise VerifyError("E_SIG_INVALID", result.status)

    return SignatureAssertion(
        key_id=key_id,
        signed_at=signed_at,
        hash_algorithm=hash_algorithm,
        signer=keys[0],
        ambiguous=len(keys) > 1,
    )
