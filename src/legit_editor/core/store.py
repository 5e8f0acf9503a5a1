"""Version store contract and a git-backed implementation."""

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

import git
from git import Actor, Repo

from legit_editor.core.paths import LegitPaths, ParsedPath
from legit_editor.exceptions import InvalidPathError, StoreReadError, StoreWriteError

logger = logging.getLogger(__name__)

_READ_ERRORS = (
    IndexError,
    KeyError,
    ValueError,
    TypeError,
    git.exc.BadName,
    git.exc.BadObject,
    git.exc.GitCommandError,
    git.exc.InvalidGitRepositoryError,
    git.exc.NoSuchPathError,
)


class VersionStore(Protocol):
    """Asynchronous access to a versioned path namespace.

    Reads raise ``StoreReadError`` and writes raise ``StoreWriteError``.
    No operation is atomic across paths.
    """

    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...


class GitVersionStore:
    """Serves the versioned namespace from a real git repository.

    Writing the tip path of a branch commits the new content and advances the
    branch. Only the checked-out branch accepts writes. GitPython calls are
    blocking, so the async methods run them in a worker thread, one at a time.
    """

    def __init__(
        self,
        repo_dir: Path,
        namespace: str = "legit",
        author: Optional[Actor] = None,
    ):
        self.repo_dir = Path(repo_dir)
        self.paths = LegitPaths(namespace)
        self.author = author or Actor("legit-editor", "legit-editor@localhost")
        self._repo: Optional[Repo] = None
        self._lock = threading.Lock()

    @property
    def repo(self) -> Repo:
        """Get the git repository, opening it on first use."""
        if self._repo is None:
            self._repo = Repo(self.repo_dir)
        return self._repo

    def exists(self) -> bool:
        """Check if the backing repository exists."""
        return (self.repo_dir / ".git").exists()

    def bootstrap(
        self,
        branch: str = "main",
        file_name: str = "document.txt",
        content: str = "Hello World",
        message: str = "Initial commit",
    ) -> str:
        """Create the repository with one seed commit and return its oid."""
        if self.exists():
            raise StoreWriteError(str(self.repo_dir), "Repository already initialized")

        self.repo_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._repo = Repo.init(self.repo_dir)
            # Point HEAD at the branch before the first commit creates it
            self._repo.git.symbolic_ref("HEAD", f"refs/heads/{branch}")
            commit = self._commit_file(file_name, content, message)

        logger.info("Initialized %s on branch %s at %s", self.repo_dir, branch, commit.hexsha)
        return commit.hexsha

    async def read_file(self, path: str) -> str:
        return await asyncio.to_thread(self.read_path, path)

    async def write_file(self, path: str, content: str) -> None:
        await asyncio.to_thread(self.write_path, path, content)

    def read_path(self, path: str) -> str:
        """Resolve a namespace path and return its content as text."""
        try:
            parsed = self.paths.parse(path)
        except InvalidPathError as e:
            raise StoreReadError(path, str(e)) from e

        with self._lock:
            try:
                return self._read(parsed)
            except _READ_ERRORS as e:
                raise StoreReadError(path, f"Cannot read: {e}") from e

    def write_path(self, path: str, content: str) -> str:
        """Commit ``content`` to a branch tip path and return the new oid."""
        try:
            parsed = self.paths.parse(path)
        except InvalidPathError as e:
            raise StoreWriteError(path, str(e)) from e

        if parsed.kind != "tip":
            raise StoreWriteError(path, "Path is read-only")

        with self._lock:
            try:
                active = self.repo.active_branch.name
            except (TypeError, ValueError, git.exc.InvalidGitRepositoryError) as e:
                raise StoreWriteError(path, f"No writable branch: {e}") from e
            if active != parsed.branch:
                raise StoreWriteError(path, f"Branch {parsed.branch} is not checked out")

            try:
                commit = self._commit_file(
                    parsed.file_name, content, f"Update {parsed.file_name}"
                )
            except (OSError, git.exc.GitCommandError) as e:
                raise StoreWriteError(path, f"Commit failed: {e}") from e

        logger.debug("Committed %s to %s as %s", parsed.file_name, parsed.branch, commit.hexsha)
        return commit.hexsha

    def _read(self, parsed: ParsedPath) -> str:
        if parsed.kind == "head":
            return self.repo.heads[parsed.branch].commit.hexsha

        if parsed.kind == "history":
            branch = self.repo.heads[parsed.branch]
            records = [self._serialize_commit(c) for c in self.repo.iter_commits(branch)]
            return json.dumps(records)

        if parsed.kind == "tip":
            commit = self.repo.heads[parsed.branch].commit
        else:
            commit = self.repo.commit(parsed.oid)

        blob = commit.tree / parsed.file_name
        return blob.data_stream.read().decode("utf-8")

    def _commit_file(self, file_name: str, content: str, message: str) -> git.Commit:
        target = self.repo_dir / file_name
        target.write_text(content, encoding="utf-8")
        self.repo.index.add([file_name])
        return self.repo.index.commit(message, author=self.author, committer=self.author)

    @staticmethod
    def _serialize_commit(commit: git.Commit) -> Dict:
        return {
            "oid": commit.hexsha,
            "message": commit.message,
            "parent": [p.hexsha for p in commit.parents],
            "tree": commit.tree.hexsha,
            "author": _signature(commit.author, commit.authored_date, commit.author_tz_offset),
            "committer": _signature(
                commit.committer, commit.committed_date, commit.committer_tz_offset
            ),
        }


def _signature(actor: Actor, timestamp: int, tz_offset: int) -> Dict:
    # GitPython offsets are seconds west of UTC; the wire format uses minutes
    return {
        "name": actor.name,
        "email": actor.email,
        "timestamp": int(timestamp),
        "timezoneOffset": tz_offset // 60,
    }

