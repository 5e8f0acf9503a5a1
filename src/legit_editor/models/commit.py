"""Commit models mirroring the store's serialized history."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Signature(BaseModel):
    """Author or committer of a commit.

    ``timezone_offset`` is in minutes and follows the JavaScript
    ``Date.getTimezoneOffset`` convention: positive west of UTC.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    email: str
    timestamp: int
    timezone_offset: Optional[int] = Field(default=None, alias="timezoneOffset")

    @property
    def when(self) -> datetime:
        """Timestamp as an aware datetime in the signer's timezone."""
        offset = timedelta(minutes=-(self.timezone_offset or 0))
        return datetime.fromtimestamp(self.timestamp, tz=timezone(offset))


class CommitRecord(BaseModel):
    """Immutable metadata describing one versioned snapshot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    oid: str = Field(min_length=1)
    message: str
    parent_oids: List[str] = Field(default_factory=list, alias="parent")
    tree: Optional[str] = None
    author: Signature
    committer: Signature

    @property
    def first_parent(self) -> Optional[str]:
        return self.parent_oids[0] if self.parent_oids else None

    @property
    def is_root(self) -> bool:
        return not self.parent_oids

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.strip().split("\n")[0]


class EnrichedCommit(CommitRecord):
    """A commit record with its before/after snapshots resolved for diffing."""

    old_content: str = ""
    new_content: str = ""
