"""Loading and enriching the commit history of a document."""

import asyncio
import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from legit_editor.core.paths import DocumentPaths
from legit_editor.core.store import VersionStore
from legit_editor.exceptions import (
    CorruptHistoryError,
    InvalidPathError,
    StoreReadError,
)
from legit_editor.models.commit import CommitRecord, EnrichedCommit

logger = logging.getLogger(__name__)


def parse_history(raw: Optional[str]) -> List[CommitRecord]:
    """Decode and validate a serialized history, newest first.

    A missing or blank payload is an empty history. Anything else that is not
    a JSON list of valid commit records raises ``CorruptHistoryError``.
    """
    if raw is None or not raw.strip():
        return []

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptHistoryError(f"History is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise CorruptHistoryError(
            f"History must be a list of commits, got {type(data).__name__}"
        )

    records = []
    for index, item in enumerate(data):
        try:
            records.append(CommitRecord.model_validate(item))
        except ValidationError as e:
            raise CorruptHistoryError(f"Commit #{index} is malformed: {e}") from e
    return records


class HistoryLoader:
    """Turns the store's raw history into a diff-ready list."""

    def __init__(self, store: VersionStore, paths: DocumentPaths):
        self.store = store
        self.paths = paths

    async def load(self) -> List[EnrichedCommit]:
        """Fetch, validate and enrich the history.

        Never raises for read or parse failures; those produce an empty list.
        """
        try:
            raw = await self.store.read_file(self.paths.history)
        except StoreReadError as e:
            logger.debug("History not available: %s", e)
            return []

        try:
            records = parse_history(raw)
        except CorruptHistoryError as e:
            logger.warning("Discarding corrupt history: %s", e)
            return []

        return await self.enrich(records)

    async def enrich(self, records: List[CommitRecord]) -> List[EnrichedCommit]:
        """Resolve before/after snapshots for every record.

        Each distinct oid is looked up once and all lookups run concurrently;
        the result is built only after every lookup has finished.
        """
        oids = list(
            dict.fromkeys(
                oid
                for record in records
                for oid in (record.oid, record.first_parent)
                if oid is not None
            )
        )

        contents = await asyncio.gather(*(self.read_content(oid) for oid in oids))
        snapshots: Dict[str, str] = dict(zip(oids, contents))

        return [
            EnrichedCommit(
                **record.model_dump(),
                old_content=snapshots.get(record.first_parent, ""),
                new_content=snapshots[record.oid],
            )
            for record in records
        ]

    async def read_content(self, oid: Optional[str]) -> str:
        """Content of the document at ``oid``; empty when unavailable."""
        if not oid:
            return ""
        try:
            return await self.store.read_file(self.paths.at_commit(oid))
        except (StoreReadError, InvalidPathError) as e:
            logger.debug("No content for %s: %s", oid, e)
            return ""
