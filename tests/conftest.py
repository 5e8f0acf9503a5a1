"""Shared fixtures: an in-memory version store and a git-backed one."""

import asyncio
import hashlib
import json
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
from git import Actor

from legit_editor.core.paths import LegitPaths
from legit_editor.core.store import GitVersionStore
from legit_editor.exceptions import InvalidPathError, StoreReadError, StoreWriteError


class MemoryStore:
    """A single-branch version store kept in memory.

    Failure injection: paths in ``fail_reads`` raise ``StoreReadError``,
    ``fail_writes`` makes every write raise ``StoreWriteError``,
    ``history_payload`` replaces the serialized history and
    ``stale_history_reads`` makes that many history reads omit the newest
    commit. ``gates`` maps a path kind to an event that reads of that kind
    wait on.
    """

    def __init__(self, branch: str = "main", file_name: str = "document.txt"):
        self.layout = LegitPaths("legit")
        self.branch = branch
        self.file_name = file_name
        self.records: List[Dict] = []  # newest first
        self.contents: Dict[str, str] = {}
        self.fail_reads: Set[str] = set()
        self.fail_writes = False
        self.history_payload: Optional[str] = None
        self.stale_history_reads = 0
        self.gates: Dict[str, asyncio.Event] = {}
        self.reads: List[str] = []
        self.writes: List[str] = []
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def head(self) -> Optional[str]:
        return self.records[0]["oid"] if self.records else None

    def commit(self, content: str, message: Optional[str] = None) -> str:
        oid = hashlib.sha1(f"{len(self.records)}:{content}".encode()).hexdigest()
        signature = {
            "name": "Test",
            "email": "test@example.com",
            "timestamp": 1700000000 + len(self.records),
            "timezoneOffset": 0,
        }
        self.records.insert(
            0,
            {
                "oid": oid,
                "message": message or f"Update {self.file_name}\n",
                "parent": [self.head] if self.head else [],
                "tree": None,
                "author": signature,
                "committer": signature,
            },
        )
        self.contents[oid] = content
        return oid

    async def read_file(self, path: str) -> str:
        self.reads.append(path)
        try:
            parsed = self.layout.parse(path)
        except InvalidPathError as e:
            raise StoreReadError(path, str(e)) from e

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if parsed.kind in self.gates:
                await self.gates[parsed.kind].wait()
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if path in self.fail_reads:
            raise StoreReadError(path, "injected failure")

        if parsed.kind == "head":
            if self.head is None:
                raise StoreReadError(path, "branch has no commits")
            return self.head + "\n"

        if parsed.kind == "history":
            if self.history_payload is not None:
                return self.history_payload
            if not self.records:
                raise StoreReadError(path, "history not populated")
            records = self.records
            if self.stale_history_reads:
                self.stale_history_reads -= 1
                records = records[1:]
            return json.dumps(records)

        oid = self.head if parsed.kind == "tip" else parsed.oid
        if oid not in self.contents:
            raise StoreReadError(path, "no such commit")
        return self.contents[oid]

    async def write_file(self, path: str, content: str) -> None:
        self.writes.append(path)
        if self.fail_writes:
            raise StoreWriteError(path, "injected failure")
        if self.layout.parse(path).kind != "tip":
            raise StoreWriteError(path, "Path is read-only")
        self.commit(content)


@pytest.fixture
def memory_store():
    """A memory store seeded like a fresh repository."""
    store = MemoryStore()
    store.commit("Hello World", "Initial commit")
    return store


@pytest.fixture
def empty_store():
    return MemoryStore()


@pytest.fixture
def git_store():
    """A git-backed store bootstrapped with 'Hello World'."""
    with tempfile.TemporaryDirectory() as temp_dir:
        store = GitVersionStore(
            Path(temp_dir) / "repo", author=Actor("Test", "test@example.com")
        )
        store.bootstrap()
        yield store
