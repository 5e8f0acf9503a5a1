"""Exception hierarchy for legit-editor."""


class LegitEditorError(RuntimeError):
    """Base class for all legit-editor errors."""


class ConfigError(LegitEditorError):
    """Raised when the editor configuration cannot be loaded or is invalid."""


class InvalidPathError(LegitEditorError):
    """Raised when a path does not belong to the virtual namespace."""

    def __init__(self, path: str, reason: str = "not a recognised path"):
        super().__init__(f"{path}: {reason}")
        self.path = path


class StoreError(LegitEditorError):
    """Base class for failures reported by a version store."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{message} ({path})")
        self.path = path


class StoreReadError(StoreError):
    """A path could not be read: missing, not yet populated, or unreadable."""


class StoreWriteError(StoreError):
    """The store rejected a write."""


class CorruptHistoryError(LegitEditorError):
    """The serialized history payload failed schema validation."""
