"""Data models for legit-editor."""

from .checkout import CheckoutState
from .commit import CommitRecord, EnrichedCommit, Signature
from .diff import DiffSegment, SegmentKind

__all__ = [
    "CheckoutState",
    "CommitRecord",
    "DiffSegment",
    "EnrichedCommit",
    "SegmentKind",
    "Signature",
]
