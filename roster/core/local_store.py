# roster/core/local_store.py
"""
Local persisted key/value store (the browser localStorage equivalent).

Two consumers:
  - the Supabase auth client, which persists its session under a
    namespaced key (handed over as `storage=` in the client options, so the
    async get_item/set_item/remove_item trio is the contract it expects)
  - the private notes feature (its own key, unrelated to auth)

Values are strings. With a path the whole map is rewritten as one JSON file
on every mutation; without a path the store lives in memory only.
"""
import json
import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else None
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable local store {self._path}: {e}")
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    # ----- Storage protocol used by the Supabase auth client -----

    async def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    async def remove_item(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    # ----- Helpers -----

    def keys(self) -> list[str]:
        return list(self._data)

    def clear_matching(
        self,
        prefixes: Iterable[str],
        markers: Iterable[str] = (),
    ) -> list[str]:
        """
        Remove every key that starts with one of `prefixes` or contains one
        of `markers`, including keys written by older client versions.

        Returns:
            The removed keys.
        """
        prefixes = tuple(prefixes)
        markers = tuple(markers)
        removed = [
            key
            for key in self._data
            if key.startswith(prefixes) or any(m in key for m in markers)
        ]
        for key in removed:
            del self._data[key]
        if removed:
            self._flush()
        return removed
