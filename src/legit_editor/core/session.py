"""Editor session: polling, history loading and checkout wired together."""

import asyncio
import logging
from typing import List, Optional

from legit_editor.config import EditorConfig
from legit_editor.core.checkout import CheckoutController
from legit_editor.core.editor import EditorState
from legit_editor.core.history import HistoryLoader
from legit_editor.core.paths import DocumentPaths
from legit_editor.core.poller import SyncPoller
from legit_editor.core.store import VersionStore
from legit_editor.exceptions import StoreReadError
from legit_editor.models.checkout import CheckoutState
from legit_editor.models.commit import EnrichedCommit

logger = logging.getLogger(__name__)


class EditorSession:
    """Keeps one document editor in step with a version store.

    The poller drives :meth:`refresh` whenever the head moves. Refreshes run
    one at a time and publish a complete history in a single transition, so
    the controller never sees a partly loaded history. After :meth:`stop`,
    refreshes that were already running are dropped instead of published.
    """

    def __init__(self, store: VersionStore, config: Optional[EditorConfig] = None):
        self.config = config or EditorConfig()
        self.store = store
        self.paths = DocumentPaths.from_config(self.config)
        self.loader = HistoryLoader(store, self.paths)
        self.controller = CheckoutController(
            store,
            self.paths,
            selection_policy=self.config.selection_policy,
            draft_policy=self.config.draft_policy,
        )
        self.editor = EditorState(self.controller)
        self.poller = SyncPoller(
            self.read_head, self._on_head_changed, interval=self.config.poll_interval
        )
        self.is_running = False
        self._generation = 0
        self._refresh_lock = asyncio.Lock()

    @property
    def state(self) -> CheckoutState:
        return self.controller.state

    async def __aenter__(self) -> "EditorSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        """Load the current head right away, then keep polling."""
        if self.is_running:
            return
        self.is_running = True
        await self.poller.tick()
        self.poller.start()

    async def stop(self) -> None:
        self.is_running = False
        self._generation += 1
        await self.poller.stop()

    async def read_head(self) -> str:
        return await self.store.read_file(self.paths.head)

    async def sync(self) -> Optional[str]:
        """Sample the head now instead of waiting for the next tick."""
        return await self.poller.tick()

    async def refresh(self) -> CheckoutState:
        """Reload the history and publish it to the controller."""
        generation = self._generation
        async with self._refresh_lock:
            history = await self._load_reconciled()
            if generation != self._generation:
                logger.debug("Dropping history loaded before the session stopped")
                return self.controller.state
            return self.controller.publish_history(history)

    def checkout(self, oid: str) -> bool:
        return self.controller.checkout(oid)

    def edit(self, text: str) -> bool:
        return self.editor.edit(text)

    async def save(self) -> bool:
        return await self.controller.save()

    async def _on_head_changed(self, oid: str) -> None:
        logger.info("Head changed to %s", oid)
        await self.refresh()

    async def _load_reconciled(self) -> List[EnrichedCommit]:
        # Head and history are separate reads and may see different commits;
        # only accept a history whose first entry is the head read after it.
        history: List[EnrichedCommit] = []
        for attempt in range(1, self.config.reconcile_attempts + 1):
            history = await self.loader.load()
            if not history:
                # Retry on the next tick even if the head stays the same
                self.poller.reset()
                return history

            try:
                head = (await self.read_head()).strip()
            except StoreReadError as e:
                logger.debug("Cannot confirm head, keeping loaded history: %s", e)
                return history

            if head == history[0].oid:
                self.poller.observed_head = head
                return history
            logger.debug(
                "History starts at %s but head is %s (attempt %d)",
                history[0].oid,
                head,
                attempt,
            )

        logger.warning(
            "History did not settle on the head after %d attempts",
            self.config.reconcile_attempts,
        )
        self.poller.reset()
        return history
