"""Tests para el historial de recomendaciones."""

import pytest

from infrastructure.key_value_store import InMemoryKeyValueStore
from modules.vitaband_mqtt import Priority, Recommendation
from modules.vitaband_storage import RecommendationHistory
from modules.vitaband_storage.keys import HISTORY_KEY, LAST_RECOMMENDATION_KEY


def make_recommendation(message, priority=Priority.NORMAL):
    return Recommendation(
        timestamp="2024-05-01T10:00:00Z",
        message=message,
        summary="s",
        advice="a",
        priority=priority,
    )


class TestRecommendationHistory:
    """Tests para RecommendationHistory."""

    @pytest.mark.asyncio
    async def test_empty_history(self, history):
        assert await history.items() == []
        assert await history.last() is None

    @pytest.mark.asyncio
    async def test_newest_first(self, history):
        await history.add(make_recommendation("first"))
        await history.add(make_recommendation("second"))

        items = await history.items()

        assert [item.message for item in items] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_capacity_drops_oldest(self, history):
        """Test al superar la capacidad se descartan las más antiguas."""
        for i in range(7):
            await history.add(make_recommendation(f"r{i}"))

        items = await history.items()

        assert history.capacity == 5
        assert [item.message for item in items] == ["r6", "r5", "r4", "r3", "r2"]

    @pytest.mark.asyncio
    async def test_items_have_unique_ids(self, history):
        first = await history.add(make_recommendation("a"))
        second = await history.add(make_recommendation("b"))

        assert first.id != second.id
        assert first.priority is Priority.NORMAL

    @pytest.mark.asyncio
    async def test_delete(self, history):
        item = await history.add(make_recommendation("a"))
        await history.add(make_recommendation("b"))

        assert await history.delete(item.id) is True
        assert await history.delete(item.id) is False
        assert [i.message for i in await history.items()] == ["b"]

    @pytest.mark.asyncio
    async def test_clear(self, history, store):
        await history.add(make_recommendation("a"))

        await history.clear()

        assert await history.items() == []
        assert await store.get(HISTORY_KEY) is None

    @pytest.mark.asyncio
    async def test_save_last(self, history):
        recommendation = make_recommendation("latest", Priority.CRITICAL)

        await history.save_last(recommendation)

        assert await history.last() == recommendation

    @pytest.mark.asyncio
    async def test_corrupt_data_is_discarded(self):
        store = InMemoryKeyValueStore({
            HISTORY_KEY: "not json",
            LAST_RECOMMENDATION_KEY: '{"message": "incomplete"}',
        })
        history = RecommendationHistory(store)

        assert await history.items() == []
        assert await history.last() is None

        await history.add(make_recommendation("fresh"))
        assert len(await history.items()) == 1

    def test_invalid_capacity(self, store):
        with pytest.raises(ValueError):
            RecommendationHistory(store, capacity=0)
