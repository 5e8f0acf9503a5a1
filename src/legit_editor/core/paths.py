"""Logical paths of the versioned namespace.

A store exposes one branch and its commits under a hidden namespace
directory::

    /.<ns>/branches/<branch>/.<ns>/head        current head oid
    /.<ns>/branches/<branch>/.<ns>/history     serialized commit list
    /.<ns>/branches/<branch>/<file>            tip content (read/write)
    /.<ns>/commits/<oid[:2]>/<oid[2:]>/<file>  content at a commit
"""

import re
from typing import NamedTuple, Optional

from legit_editor.exceptions import InvalidPathError


class ParsedPath(NamedTuple):
    """A namespace path broken into its parts."""

    kind: str  # "head", "history", "tip" or "commit"
    branch: Optional[str] = None
    oid: Optional[str] = None
    file_name: Optional[str] = None


class LegitPaths:
    """Builds and parses paths for one namespace."""

    def __init__(self, namespace: str = "legit"):
        self.namespace = namespace
        ns = re.escape(namespace)
        self._branch_meta = re.compile(rf"^/\.{ns}/branches/([^/]+)/\.{ns}/(head|history)$")
        self._branch_file = re.compile(rf"^/\.{ns}/branches/([^/]+)/([^/.][^/]*)$")
        self._commit_file = re.compile(
            rf"^/\.{ns}/commits/([0-9a-fA-F]{{2}})/([0-9a-fA-F]+)/([^/]+)$"
        )

    @property
    def root(self) -> str:
        return f"/.{self.namespace}"

    def head(self, branch: str) -> str:
        return f"{self.root}/branches/{branch}/.{self.namespace}/head"

    def history(self, branch: str) -> str:
        return f"{self.root}/branches/{branch}/.{self.namespace}/history"

    def tip(self, branch: str, file_name: str) -> str:
        return f"{self.root}/branches/{branch}/{file_name}"

    def commit_file(self, oid: str, file_name: str) -> str:
        if len(oid) < 3:
            raise InvalidPathError(oid, "object id too short")
        return f"{self.root}/commits/{oid[:2]}/{oid[2:]}/{file_name}"

    def parse(self, path: str) -> ParsedPath:
        """Classify ``path``; raises ``InvalidPathError`` when it is foreign."""
        match = self._branch_meta.match(path)
        if match:
            return ParsedPath(kind=match.group(2), branch=match.group(1))

        match = self._commit_file.match(path)
        if match:
            return ParsedPath(
                kind="commit",
                oid=match.group(1) + match.group(2),
                file_name=match.group(3),
            )

        match = self._branch_file.match(path)
        if match:
            return ParsedPath(kind="tip", branch=match.group(1), file_name=match.group(2))

        raise InvalidPathError(path)


class DocumentPaths:
    """The four paths used by an editor bound to one branch and one file."""

    def __init__(self, namespace: str, branch: str, file_name: str):
        self.layout = LegitPaths(namespace)
        self.branch = branch
        self.file_name = file_name

    @classmethod
    def from_config(cls, config) -> "DocumentPaths":
        return cls(config.namespace, config.branch, config.file_name)

    @property
    def head(self) -> str:
        return self.layout.head(self.branch)

    @property
    def history(self) -> str:
        return self.layout.history(self.branch)

    @property
    def tip(self) -> str:
        return self.layout.tip(self.branch, self.file_name)

    def at_commit(self, oid: str) -> str:
        return self.layout.commit_file(oid, self.file_name)
