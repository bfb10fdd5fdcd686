"""Key-value store implementations."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from adapters.interfaces.storage import KeyValueStoreInterface


logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """In-memory store for development and testing."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """Store persisted as a single JSON object on disk.

    Every write rewrites the file through a temporary sibling and a rename.
    File reads and writes run in the default executor so the event loop
    keeps dispatching broker messages meanwhile.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self._data: Optional[Dict[str, str]] = None

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            return {str(k): str(v) for k, v in loaded.items()}
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Error reading store {self.path}: {e}")
            return {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)

    async def _load(self) -> Dict[str, str]:
        if self._data is None:
            loop = asyncio.get_running_loop()
            self._data = await loop.run_in_executor(None, self._read)
        return self._data

    async def _flush(self) -> None:
        snapshot = dict(self._data or {})
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, snapshot)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return (await self._load()).get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            (await self._load())[key] = value
            await self._flush()

    async def delete(self, key: str) -> None:
        async with self._lock:
            if (await self._load()).pop(key, None) is not None:
                await self._flush()

    async def keys(self) -> List[str]:
        async with self._lock:
            return list(await self._load())
