"""
What to do with an item whose timeline is missing or too sparse.
"""
import logging
import re
from typing import Optional

from .exceptions import MissingMetadataError
from .models import ItemOutcome, MissingMetaPolicy, ParseStats, TimelineStatus

# Legacy / camelCase spellings accepted from callers
_ALIASES = {
    "skipburninconvert": MissingMetaPolicy.SKIP_BURNIN_CONVERT,
    "skip_burnin_convert": MissingMetaPolicy.SKIP_BURNIN_CONVERT,
    "skipfile": MissingMetaPolicy.SKIP_FILE,
    "skip_file": MissingMetaPolicy.SKIP_FILE,
    "error": MissingMetaPolicy.ERROR,
}


def normalize_policy(value) -> MissingMetaPolicy:
    """
    Lenient policy parsing: strips whitespace, folds case, treats '-' as '_'.
    Unknown values fall back to ERROR with a warning.
    """
    if isinstance(value, MissingMetaPolicy):
        return value

    clean = re.sub(r"\s+", "", str(value or "")).replace("-", "_").lower()
    policy = _ALIASES.get(clean)
    if policy is None:
        logging.warning(f"Unknown missing-meta value '{value}'; defaulting to 'error'")
        return MissingMetaPolicy.ERROR
    return policy


def resolve_outcome(status: TimelineStatus,
                    policy: MissingMetaPolicy,
                    stats: Optional[ParseStats] = None,
                    label: str = "") -> ItemOutcome:
    """
    Maps a timeline status onto an item outcome.

    Raises MissingMetadataError under the 'error' policy when the timeline
    is unavailable or insufficient; no artifacts may be written in that case.
    """
    if status == TimelineStatus.PROCEED:
        return ItemOutcome.SUCCESS

    reason = "missing" if status == TimelineStatus.UNAVAILABLE else "insufficient"

    if policy == MissingMetaPolicy.SKIP_BURNIN_CONVERT:
        logging.warning(f"Timestamp metadata {reason} for {label}; converting without burn-in.")
        return ItemOutcome.DELEGATE_CONVERT

    if policy == MissingMetaPolicy.SKIP_FILE:
        logging.warning(f"Timestamp metadata {reason} for {label}; skipping file.")
        return ItemOutcome.SKIPPED

    raise MissingMetadataError(f"Timestamp metadata {reason} for {label}", status=status, stats=stats)
