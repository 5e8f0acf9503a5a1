"""Checkout state machine for a single document.

Every change to the checkout state goes through :func:`transition`, a pure
function of the current state and one event. Editing is not a state of its
own: it is allowed exactly when the selection is the head of the history.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from legit_editor.config import DraftPolicy, SelectionPolicy
from legit_editor.core.diff import diff_texts
from legit_editor.core.paths import DocumentPaths
from legit_editor.core.store import VersionStore
from legit_editor.exceptions import StoreWriteError
from legit_editor.models.checkout import CheckoutState
from legit_editor.models.commit import EnrichedCommit
from legit_editor.models.diff import DiffSegment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryPublished:
    """A freshly loaded history replaces the current one."""

    history: Tuple[EnrichedCommit, ...]


@dataclass(frozen=True)
class CommitSelected:
    """The user checked out a commit."""

    oid: str


@dataclass(frozen=True)
class DraftEdited:
    """The user changed the draft buffer."""

    text: str


@dataclass(frozen=True)
class SaveCompleted:
    """The store accepted a write of ``content``."""

    content: str


Event = Union[HistoryPublished, CommitSelected, DraftEdited, SaveCompleted]
StateListener = Callable[[CheckoutState], None]


def transition(
    state: CheckoutState,
    event: Event,
    selection_policy: SelectionPolicy = SelectionPolicy.PIN,
    draft_policy: DraftPolicy = DraftPolicy.RESET,
) -> CheckoutState:
    """Return the state after ``event``; returns ``state`` itself for no-ops."""
    if isinstance(event, HistoryPublished):
        return _publish(state, event.history, selection_policy, draft_policy)

    if isinstance(event, CommitSelected):
        commit = state.find(event.oid)
        if commit is None:
            return state
        return state.model_copy(
            update={
                "selection": commit.oid,
                "draft": commit.new_content,
                "draft_base": commit.new_content,
            }
        )

    if isinstance(event, DraftEdited):
        if not state.can_edit or event.text == state.draft:
            return state
        return state.model_copy(update={"draft": event.text})

    if isinstance(event, SaveCompleted):
        # The new head is unknown until the store reports it
        return state.model_copy(
            update={"selection": None, "draft": event.content, "draft_base": event.content}
        )

    raise TypeError(f"Unknown checkout event: {event!r}")


def _publish(
    state: CheckoutState,
    history: Sequence[EnrichedCommit],
    selection_policy: SelectionPolicy,
    draft_policy: DraftPolicy,
) -> CheckoutState:
    history = tuple(history)
    if not history:
        if not state.history:
            return state
        return state.model_copy(update={"history": ()})

    head = history[0]
    previous_head = state.last_head
    selection, draft, base = state.selection, state.draft, state.draft_base

    if selection is None or all(c.oid != selection for c in history):
        selection, draft, base = head.oid, head.new_content, head.new_content
    elif head.oid != previous_head:
        if selection == previous_head:
            selection, base = head.oid, head.new_content
            draft = _next_draft(state, head, draft_policy)
        elif selection_policy is SelectionPolicy.FOLLOW:
            selection, draft, base = head.oid, head.new_content, head.new_content
    elif selection == head.oid and draft == base:
        # Same head, but its snapshot may have resolved differently this time
        draft = base = head.new_content

    new_state = CheckoutState(
        history=history,
        selection=selection,
        draft=draft,
        draft_base=base,
        last_head=head.oid,
    )
    return state if new_state == state else new_state


def _next_draft(state: CheckoutState, head: EnrichedCommit, draft_policy: DraftPolicy) -> str:
    if draft_policy is DraftPolicy.KEEP_DIRTY and state.draft != state.draft_base:
        return state.draft
    return head.new_content


class CheckoutController:
    """Owns the checkout state and the write path to the store."""

    def __init__(
        self,
        store: VersionStore,
        paths: DocumentPaths,
        selection_policy: SelectionPolicy = SelectionPolicy.PIN,
        draft_policy: DraftPolicy = DraftPolicy.RESET,
    ):
        self.store = store
        self.paths = paths
        self.selection_policy = selection_policy
        self.draft_policy = draft_policy
        self.state = CheckoutState()
        self._listeners: List[StateListener] = []

    @property
    def history(self) -> Tuple[EnrichedCommit, ...]:
        return self.state.history

    @property
    def head(self) -> Optional[str]:
        return self.state.head

    @property
    def selection(self) -> Optional[str]:
        return self.state.selection

    @property
    def can_edit(self) -> bool:
        return self.state.can_edit

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns an unsubscriber."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, event: Event) -> CheckoutState:
        new_state = transition(self.state, event, self.selection_policy, self.draft_policy)
        if new_state is not self.state:
            self.state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return new_state

    def publish_history(self, history: Sequence[EnrichedCommit]) -> CheckoutState:
        return self.dispatch(HistoryPublished(tuple(history)))

    def checkout(self, oid: str) -> bool:
        """Select ``oid``; returns False when it is not in the history."""
        if self.state.find(oid) is None:
            logger.debug("Ignoring checkout of unknown commit %s", oid)
            return False
        self.dispatch(CommitSelected(oid))
        return True

    def edit(self, text: str) -> bool:
        """Replace the draft; returns False while the selection is read-only."""
        if not self.state.can_edit:
            return False
        self.dispatch(DraftEdited(text))
        return True

    async def save(self) -> bool:
        """Write the draft to the branch tip.

        Returns False without touching the store when the head is not
        selected. A rejected write is logged and re-raised with the draft left
        as it was.
        """
        if not self.state.can_edit:
            logger.debug("Save ignored: %s is not the head", self.state.selection)
            return False

        content = self.state.draft
        try:
            await self.store.write_file(self.paths.tip, content)
        except StoreWriteError as e:
            logger.error("Save failed: %s", e)
            raise

        logger.info("Saved %d characters to %s", len(content), self.paths.tip)
        self.dispatch(SaveCompleted(content))
        return True

    def diff_for(self, oid: Optional[str] = None) -> List[DiffSegment]:
        """Semantic diff introduced by ``oid`` (the selection by default)."""
        commit = self.state.find(oid or self.state.selection)
        if commit is None:
            return []
        return diff_texts(commit.old_content, commit.new_content)
