"""Wardrobe search and laundry tools."""
from __future__ import annotations

import time

from ..persistence.models import Item
from ..persistence.store import ItemFilters, RecordNotFoundError, WardrobeStore
from .types import (
    ItemUpdate,
    LaundryStatus,
    ToolResult,
    WardrobeFilters,
    WardrobeItemSummary,
    WardrobeSearchResult,
    utcnow,
)

SEMANTIC_SEARCH_THRESHOLD = 0.7
SEMANTIC_SEARCH_LIMIT = 50


def summarize_item(item: Item, similarity: float | None = None) -> WardrobeItemSummary:
    return WardrobeItemSummary(
        id=item.id,
        title=item.title,
        category=item.category,
        colors=list(item.colors or []),
        formality=item.formality.value,
        is_clean=item.is_clean,
        wear_count=item.wear_count,
        fabric=item.fabric,
        seasons=list(item.seasons or []),
        image_url=item.image_url,
        similarity=similarity,
    )


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class WardrobeTool:
    def __init__(self, store: WardrobeStore) -> None:
        self._store = store

    async def search_wardrobe(
        self,
        user_id: str,
        filters: WardrobeFilters,
        embedding_query: list[float] | None = None,
    ) -> ToolResult:
        start = time.perf_counter()
        if embedding_query:
            pairs = await self._store.find_similar_items(
                embedding_query,
                threshold=SEMANTIC_SEARCH_THRESHOLD,
                limit=SEMANTIC_SEARCH_LIMIT,
                user_id=user_id,
            )
            items = [summarize_item(item, similarity) for item, similarity in pairs]
        else:
            found = await self._store.search_items(
                ItemFilters(
                    user_id=user_id,
                    category=filters.category,
                    colors=filters.colors,
                    seasons=filters.seasons,
                    formality=filters.formality,
                    is_clean=filters.is_clean,
                )
            )
            items = [summarize_item(item) for item in found]

        if filters.max_wear_count is not None:
            items = [item for item in items if item.wear_count <= filters.max_wear_count]

        # Clean items first, then the least worn.
        items.sort(key=lambda item: (not item.is_clean, item.wear_count))
        result = WardrobeSearchResult(items=items, total_count=len(items), filters=filters)
        return ToolResult.ok("wardrobe-search", result, _elapsed_ms(start))

    async def get_laundry_status(self, user_id: str, item_ids: list[str]) -> ToolResult:
        start = time.perf_counter()
        statuses: list[LaundryStatus] = []
        for item_id in item_ids:
            item = await self._store.get_item(item_id)
            if item is None or item.user_id != user_id:
                continue
            statuses.append(
                LaundryStatus(
                    item_id=item.id,
                    is_clean=item.is_clean,
                    last_worn=item.last_worn_at,
                    wear_count=item.wear_count,
                )
            )
        return ToolResult.ok("laundry-status", statuses, _elapsed_ms(start))

    async def mark_worn(self, user_id: str, item_id: str) -> ToolResult:
        start = time.perf_counter()
        item = await self._owned_item(user_id, item_id)
        updated = await self._store.update_item(
            item_id,
            wear_count=item.wear_count + 1,
            is_clean=False,
            last_worn_at=utcnow(),
        )
        data = ItemUpdate(item_id=updated.id, is_clean=updated.is_clean, wear_count=updated.wear_count)
        return ToolResult.ok("mark-worn", data, _elapsed_ms(start))

    async def mark_clean(self, user_id: str, item_id: str) -> ToolResult:
        start = time.perf_counter()
        await self._owned_item(user_id, item_id)
        updated = await self._store.update_item(item_id, is_clean=True)
        data = ItemUpdate(item_id=updated.id, is_clean=updated.is_clean, wear_count=updated.wear_count)
        return ToolResult.ok("mark-clean", data, _elapsed_ms(start))

    async def _owned_item(self, user_id: str, item_id: str) -> Item:
        item = await self._store.get_item(item_id)
        if item is None or item.user_id != user_id:
            raise RecordNotFoundError("Item not found or access denied")
        return item


__all__ = ["WardrobeTool", "summarize_item"]
