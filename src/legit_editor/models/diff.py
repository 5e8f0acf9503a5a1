"""Diff segment model."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SegmentKind(str, Enum):
    """Kind of a diff segment."""

    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class DiffSegment(BaseModel):
    """A run of text that is unchanged, inserted or deleted."""

    model_config = ConfigDict(frozen=True)

    kind: SegmentKind
    text: str

    @property
    def is_edit(self) -> bool:
        return self.kind != SegmentKind.EQUAL
