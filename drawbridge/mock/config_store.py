"""In-memory implementation of ConfigStore for testing."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from drawbridge.config import ConfigStore


class InMemoryConfigStore(ConfigStore):
    """Option store backed by a plain dictionary."""

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        self._options: Dict[str, Any] = dict(options or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._options.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._options[key] = value
