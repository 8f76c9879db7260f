"""Wardrobe persistence service backing the tool implementations."""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db import get_session_factory, session_scope
from .models import Feedback, FeedbackDecision, Formality, Item, Outfit, Preference

logger = structlog.get_logger(__name__)

DEFAULT_STYLE: dict[str, Any] = {
    "preferredColors": [],
    "avoidedColors": [],
    "preferredSilhouettes": [],
    "comfortConstraints": [],
    "formalityPreference": "casual",
}
DEFAULT_CONSTRAINTS: dict[str, Any] = {"budget": 0, "climate": "", "lifestyle": []}


class RecordNotFoundError(LookupError):
    pass


@dataclass
class ItemFilters:
    user_id: str
    category: str | None = None
    colors: list[str] | None = None
    seasons: list[str] | None = None
    formality: str | None = None
    is_clean: bool | None = None


@dataclass
class WearCount:
    item_id: str
    count: int


@dataclass
class ColorUsage:
    color: str
    count: int


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    if len(left) != len(right) or not left:
        return 0.0
    dot = sum(a * b for a, b in zip(left, right))
    norm_left = math.sqrt(sum(a * a for a in left))
    norm_right = math.sqrt(sum(b * b for b in right))
    if norm_left == 0 or norm_right == 0:
        return 0.0
    return dot / (norm_left * norm_right)


def _coerce_formality(value: Any) -> Formality:
    if isinstance(value, Formality):
        return value
    try:
        return Formality(value)
    except ValueError:
        return Formality.casual


class WardrobeStore:
    """Item, outfit, preference and feedback CRUD plus simple analytics."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    def _scope(self):
        return session_scope(self._session_factory or get_session_factory())

    # Items

    async def create_item(self, user_id: str, title: str, category: str, **fields: Any) -> Item:
        if "formality" in fields:
            fields["formality"] = _coerce_formality(fields["formality"])
        item = Item(user_id=user_id, title=title, category=category, **fields)
        async with self._scope() as session:
            session.add(item)
            await session.flush()
        logger.info("store.item_created", item_id=item.id, user_id=user_id, category=category)
        return item

    async def get_item(self, item_id: str) -> Item | None:
        async with self._scope() as session:
            return await session.get(Item, item_id)

    async def update_item(self, item_id: str, **updates: Any) -> Item:
        if "formality" in updates:
            updates["formality"] = _coerce_formality(updates["formality"])
        async with self._scope() as session:
            item = await session.get(Item, item_id)
            if item is None:
                raise RecordNotFoundError(f"Item {item_id} not found")
            for key, value in updates.items():
                setattr(item, key, value)
            session.add(item)
            await session.flush()
            return item

    async def delete_item(self, item_id: str) -> None:
        async with self._scope() as session:
            item = await session.get(Item, item_id)
            if item is not None:
                await session.delete(item)

    async def search_items(self, filters: ItemFilters) -> list[Item]:
        stmt = select(Item).where(Item.user_id == filters.user_id).order_by(Item.created_at)
        if filters.category:
            stmt = stmt.where(Item.category == filters.category)
        if filters.formality:
            stmt = stmt.where(Item.formality == _coerce_formality(filters.formality))
        if filters.is_clean is not None:
            stmt = stmt.where(Item.is_clean == filters.is_clean)
        async with self._scope() as session:
            items = list((await session.execute(stmt)).scalars())

        # JSON list columns are matched in Python to stay portable across backends.
        if filters.colors:
            wanted = set(filters.colors)
            items = [item for item in items if wanted.intersection(item.colors or [])]
        if filters.seasons:
            wanted = set(filters.seasons)
            items = [item for item in items if wanted.intersection(item.seasons or [])]
        return items

    async def find_similar_items(
        self,
        embedding: Sequence[float],
        threshold: float,
        limit: int,
        user_id: str | None = None,
    ) -> list[tuple[Item, float]]:
        stmt = select(Item).where(Item.embedding.is_not(None))
        if user_id is not None:
            stmt = stmt.where(Item.user_id == user_id)
        async with self._scope() as session:
            candidates = list((await session.execute(stmt)).scalars())

        scored = [(item, cosine_similarity(embedding, item.embedding or [])) for item in candidates]
        scored = [pair for pair in scored if pair[1] >= threshold]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    # Outfits

    async def create_outfit(
        self,
        user_id: str,
        item_ids: Iterable[str],
        context: dict[str, Any] | None = None,
        rationale: str = "",
        score: float = 0.0,
    ) -> Outfit:
        outfit = Outfit(user_id=user_id, item_ids=list(item_ids), context=context or {}, rationale=rationale, score=score)
        async with self._scope() as session:
            session.add(outfit)
            await session.flush()
        return outfit

    async def get_outfit(self, outfit_id: str) -> Outfit | None:
        async with self._scope() as session:
            return await session.get(Outfit, outfit_id)

    async def get_user_outfits(self, user_id: str, limit: int = 50) -> list[Outfit]:
        stmt = select(Outfit).where(Outfit.user_id == user_id).order_by(Outfit.created_at.desc()).limit(limit)
        async with self._scope() as session:
            return list((await session.execute(stmt)).scalars())

    # Preferences

    async def get_preferences(self, user_id: str) -> Preference | None:
        async with self._scope() as session:
            return await session.get(Preference, user_id)

    async def update_preferences(
        self,
        user_id: str,
        style: dict[str, Any] | None = None,
        constraints: dict[str, Any] | None = None,
    ) -> Preference:
        async with self._scope() as session:
            preference = await session.get(Preference, user_id)
            if preference is None:
                preference = Preference(user_id=user_id, style=dict(DEFAULT_STYLE), constraints=dict(DEFAULT_CONSTRAINTS))
            if style is not None:
                preference.style = {**(preference.style or {}), **style}
            if constraints is not None:
                preference.constraints = {**(preference.constraints or {}), **constraints}
            session.add(preference)
            await session.flush()
            return preference

    # Feedback

    async def create_feedback(
        self,
        user_id: str,
        decision: FeedbackDecision | str,
        reason: str = "",
        outfit_id: str | None = None,
    ) -> Feedback:
        feedback = Feedback(
            user_id=user_id,
            outfit_id=outfit_id,
            decision=FeedbackDecision(decision) if isinstance(decision, str) else decision,
            reason=reason,
        )
        async with self._scope() as session:
            session.add(feedback)
            await session.flush()
        return feedback

    async def get_feedback_by_outfit(self, outfit_id: str) -> list[Feedback]:
        stmt = select(Feedback).where(Feedback.outfit_id == outfit_id).order_by(Feedback.created_at)
        async with self._scope() as session:
            return list((await session.execute(stmt)).scalars())

    async def get_user_feedback(self, user_id: str, limit: int = 50) -> list[Feedback]:
        stmt = select(Feedback).where(Feedback.user_id == user_id).order_by(Feedback.created_at.desc()).limit(limit)
        async with self._scope() as session:
            return list((await session.execute(stmt)).scalars())

    # Analytics

    async def get_wear_frequency(self, user_id: str, days: int = 30) -> list[WearCount]:
        """Wear counts per item, most worn first.

        Wear history is not stored per event, so ``days`` does not narrow the
        window; the lifetime counter on each item is reported.
        """
        items = await self.search_items(ItemFilters(user_id=user_id))
        counts = [WearCount(item_id=item.id, count=item.wear_count) for item in items]
        counts.sort(key=lambda entry: entry.count, reverse=True)
        return counts

    async def get_most_used_colors(self, user_id: str) -> list[ColorUsage]:
        items = await self.search_items(ItemFilters(user_id=user_id))
        usage: Counter[str] = Counter()
        for item in items:
            for color in item.colors or []:
                usage[color] += item.wear_count
        return [ColorUsage(color=color, count=count) for color, count in usage.most_common()]

    async def is_connected(self) -> bool:
        try:
            async with self._scope() as session:
                await session.execute(select(1))
        except Exception:
            logger.warning("store.unreachable", exc_info=True)
            return False
        return True


__all__ = [
    "ColorUsage",
    "ItemFilters",
    "RecordNotFoundError",
    "WardrobeStore",
    "WearCount",
    "cosine_similarity",
]
