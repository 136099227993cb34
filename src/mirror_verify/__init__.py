"""Mirror Check Verify - Trust, reconciliation and pruning for a mirrored yum repository."""
from .const import ERRORS, VerifyError
from .logic import VerifyConfig, verify_mirror
from .prune import PruneMode

__all__ = ["ERRORS", "VerifyError", "VerifyConfig", "verify_mirror", "PruneMode"]
