"""Checkout state model."""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .commit import EnrichedCommit


class CheckoutState(BaseModel):
    """Immutable snapshot of everything the editor shows.

    ``selection`` is ``None`` while unset. ``last_head`` remembers the head of
    the last non-empty history so that head advancement can still be detected
    after a failed load emptied ``history``. ``draft_base`` is the snapshot the
    draft was last loaded from; a draft that differs from it holds unsaved
    edits.
    """

    model_config = ConfigDict(frozen=True)

    history: Tuple[EnrichedCommit, ...] = ()
    selection: Optional[str] = None
    draft: str = ""
    draft_base: str = ""
    last_head: Optional[str] = None

    @property
    def head(self) -> Optional[str]:
        return self.history[0].oid if self.history else None

    @property
    def head_commit(self) -> Optional[EnrichedCommit]:
        return self.history[0] if self.history else None

    @property
    def is_initialized(self) -> bool:
        return self.last_head is not None

    @property
    def can_edit(self) -> bool:
        """Editing is allowed only while the head commit is selected."""
        return self.selection is not None and self.selection == self.head

    @property
    def selected_commit(self) -> Optional[EnrichedCommit]:
        return self.find(self.selection)

    @property
    def effective_content(self) -> str:
        """Snapshot of the selected commit, or empty when nothing is selected."""
        commit = self.selected_commit
        return commit.new_content if commit else ""

    @property
    def display_text(self) -> str:
        """What the editor shows: the draft at head, otherwise the snapshot.

        While the selection is unset after a save the draft holds the written
        text until the new head is confirmed.
        """
        if self.can_edit or self.selected_commit is None:
            return self.draft
        return self.selected_commit.new_content

    @property
    def is_dirty(self) -> bool:
        return self.can_edit and self.draft != self.effective_content

    def find(self, oid: Optional[str]) -> Optional[EnrichedCommit]:
        if oid is None:
            return None
        return next((c for c in self.history if c.oid == oid), None)
