"""Editor configuration."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from legit_editor.exceptions import ConfigError

CONFIG_FILE_NAME = ".legit-editor.json"


class SelectionPolicy(str, Enum):
    """What happens to a historical selection when the head advances."""

    PIN = "pin"
    FOLLOW = "follow"


class DraftPolicy(str, Enum):
    """What happens to the draft when the tracked head advances."""

    RESET = "reset"
    KEEP_DIRTY = "keep_dirty"


class EditorConfig(BaseModel):
    """Settings for a single-document editor session."""

    namespace: str = Field(default="legit", min_length=1)
    branch: str = Field(default="main", min_length=1)
    file_name: str = Field(default="document.txt", min_length=1)
    poll_interval: float = Field(default=1.0, gt=0)
    selection_policy: SelectionPolicy = SelectionPolicy.PIN
    draft_policy: DraftPolicy = DraftPolicy.RESET
    reconcile_attempts: int = Field(default=3, ge=1)
    author_name: str = "legit-editor"
    author_email: str = "legit-editor@localhost"

    @classmethod
    def load(
        cls, path: Path, overrides: Optional[Dict[str, Any]] = None
    ) -> "EditorConfig":
        """Load configuration from a JSON file, applying ``overrides`` on top.

        A missing file yields the defaults. ``None`` values in ``overrides``
        are ignored so unset CLI options do not mask file values.
        """
        data: Dict[str, Any] = {}
        path = Path(path)
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ConfigError(f"Invalid config file {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Invalid config file {path}: expected an object")

        if overrides:
            data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def save(self, path: Path) -> None:
        Path(path).write_text(
            json.dumps(self.model_dump(mode="json"), indent=2), encoding="utf-8"
        )
