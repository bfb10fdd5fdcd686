"""Historial acotado de recomendaciones.

El historial se guarda como una lista JSON ordenada de la más reciente a la
más antigua. Al superar la capacidad se descartan las más antiguas.
"""

import asyncio
import logging
import random
import string
import time
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from adapters.interfaces.storage import KeyValueStoreInterface
from modules.vitaband_mqtt.records import HistoryItem, Recommendation
from modules.vitaband_storage.keys import HISTORY_KEY, LAST_RECOMMENDATION_KEY


_HISTORY_ADAPTER = TypeAdapter(List[HistoryItem])


def _new_item_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"{int(time.time() * 1000)}_{suffix}"


class RecommendationHistory:
    """Historial de recomendaciones y última recomendación conocida.

    Las operaciones de lectura-modificación-escritura se serializan con un
    lock propio.
    """

    def __init__(self, store: KeyValueStoreInterface, capacity: int = 100):
        """Inicializa el historial.

        Args:
            store: Almacén clave-valor
            capacity: Número máximo de entradas
        """
        if capacity <= 0:
            raise ValueError("La capacidad debe ser mayor a 0")

        self._store = store
        self._capacity = capacity
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(__name__)

    @property
    def capacity(self) -> int:
        return self._capacity

    async def _load(self) -> List[HistoryItem]:
        raw = await self._store.get(HISTORY_KEY)
        if raw is None:
            return []
        try:
            return _HISTORY_ADAPTER.validate_json(raw)
        except ValidationError as e:
            self.logger.warning(f"Historial ilegible, se descarta: {e}")
            return []

    async def _save(self, items: List[HistoryItem]) -> None:
        await self._store.set(HISTORY_KEY, _HISTORY_ADAPTER.dump_json(items).decode("utf-8"))

    async def add(self, recommendation: Recommendation) -> HistoryItem:
        """Añade una recomendación al principio del historial.

        Returns:
            Entrada creada con su identificador
        """
        item = HistoryItem(**recommendation.model_dump(), id=_new_item_id())

        async with self._lock:
            items = await self._load()
            items.insert(0, item)
            del items[self._capacity:]
            await self._save(items)

        self.logger.debug(f"Recomendación guardada en historial: {item.id}")
        return item

    async def items(self) -> List[HistoryItem]:
        """Entradas del historial, la más reciente primero."""
        async with self._lock:
            return await self._load()

    async def delete(self, item_id: str) -> bool:
        """Elimina una entrada por id. Devuelve True si existía."""
        async with self._lock:
            items = await self._load()
            remaining = [item for item in items if item.id != item_id]
            if len(remaining) == len(items):
                return False
            await self._save(remaining)
            return True

    async def clear(self) -> None:
        async with self._lock:
            await self._store.delete(HISTORY_KEY)

    async def save_last(self, recommendation: Recommendation) -> None:
        """Guarda la última recomendación para el modo sin conexión."""
        await self._store.set(LAST_RECOMMENDATION_KEY, recommendation.model_dump_json())

    async def last(self) -> Optional[Recommendation]:
        raw = await self._store.get(LAST_RECOMMENDATION_KEY)
        if raw is None:
            return None
        try:
            return Recommendation.model_validate_json(raw)
        except ValidationError as e:
            self.logger.warning(f"Última recomendación ilegible: {e}")
            return None
