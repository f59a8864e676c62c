"""Reading and writing the local store cache file."""

from __future__ import annotations

import json
import os
from pathlib import Path

from .errors import CommandFailed
from .output import assure_exists
from .store import Store


def read_cache(path: str | os.PathLike) -> Store:
    """Load a store from the cache file; CommandFailed if it cannot be read."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise CommandFailed() from err
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise CommandFailed()
    try:
        return Store.from_dict(data)
    except (LookupError, TypeError, AttributeError, ValueError) as err:
        raise CommandFailed() from err


def write_cache(path: str | os.PathLike, store: Store) -> None:
    """Save the store to the cache file, creating its directory if needed."""
    try:
        text = json.dumps(store.to_dict(), indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise CommandFailed() from err
    assure_exists(path)
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as err:
        raise CommandFailed("Couldn't write to the cache file") from err


def load_cache(path: str | os.PathLike) -> Store:
    """The cached store, or a fresh empty one written to path if none can be read."""
    try:
        return read_cache(path)
    except CommandFailed:
        store = Store()
        write_cache(path, store)
        return store