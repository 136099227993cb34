ERRORS = {
  "E_INDEX_UNREADABLE": "Unable to open repository index",
  "E_INDEX_PARSE": "Repository index invalid",
  "E_KEYRING_LOAD": "Error loading keyring file",
  "E_KEYRING_EMPTY": "No signing keys loaded",
  "E_SIG_MISSING": "Index signature file missing",
  "E_SIG_DECODE": "Unable to decode signature",
  "E_SIG_NO_ISSUER": "Signature has no issuer",
  "E_SIG_NO_KEY": "No matching public key found to verify",
  "E_SIG_INVALID": "Index signature invalid",
  "E_PRIMARY_MISSING": "Could not find primary file",
  "E_CATALOG_PARSE": "Package catalog invalid",
  "E_CHECKSUM_MISMATCH": "Checksum does not match metadata",
  "E_FILE_UNREADABLE": "File missing or unreadable",
  "E_PRUNE_WALK": "Error walking mirror tree while pruning",
  "E_PRUNE_REMOVE": "Unable to remove orphaned package",
}


class VerifyError(Exception):
    """Fatal condition; nothing downstream of it can be trusted."""

    def __init__(self, code: str, detail: str | None = None):
        self.code = code
        self.detail = detail
        msg = ERRORS[code]
        super().__init__(f"{msg}: {detail}" if detail else msg)

    @property
    def message(self) -> str:
        return ERRORS[self.code]
