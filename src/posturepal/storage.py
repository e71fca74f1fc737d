from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any


class KeyValueStore:
    """Port for the small amount of state that outlives a session."""

    def get(self, key: str) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStore(KeyValueStore):
    """All keys live in one JSON object on disk; writes go through a temp file and rename."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._doc: dict[str, Any] | None = None

    def _read_all(self) -> dict[str, Any]:
        if self._doc is not None:
            return self._doc
        if not self.path.exists():
            self._doc = {}
            return self._doc
        with self.path.open("r", encoding="utf-8") as f:
            doc = json.load(f)
        if not isinstance(doc, dict):
            raise ValueError(f"Expected a JSON object in {self.path}, got {type(doc).__name__}")
        self._doc = doc
        return doc

    def get(self, key: str) -> Any:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        doc = self._read_all()
        doc[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2)
        os.replace(tmp_path, self.path)
