"""SQLAlchemy models for the wardrobe service."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str):
    return lambda: f"{prefix}_{uuid.uuid4().hex}"


class Base(DeclarativeBase):
    pass


class Formality(enum.Enum):
    casual = "casual"
    business = "business"
    formal = "formal"
    sport = "sport"
    party = "party"
    outdoor = "outdoor"


class FeedbackDecision(enum.Enum):
    accepted = "accepted"
    rejected = "rejected"
    generated = "generated"


class Item(Base):
    __tablename__ = "item"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id("item"))
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    colors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    patterns: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    fabric: Mapped[str] = mapped_column(String, nullable=False, default="unknown")
    seasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    formality: Mapped[Formality] = mapped_column(Enum(Formality), nullable=False, default=Formality.casual)
    image_url: Mapped[str] = mapped_column(String, nullable=False, default="")
    wear_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_clean: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    embedding: Mapped[list[float] | None] = mapped_column(JSON)
    perceptual_hash: Mapped[str | None] = mapped_column(String)
    last_worn_at: Mapped[datetime | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)


class Outfit(Base):
    __tablename__ = "outfit"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id("outfit"))
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    item_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    rationale: Mapped[str] = mapped_column(Text, nullable=False, default="")
    score: Mapped[float] = mapped_column(Numeric(4, 2), nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)

    feedback: Mapped[list["Feedback"]] = relationship(back_populates="outfit", cascade="all, delete-orphan")


class Preference(Base):
    __tablename__ = "preference"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    style: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    constraints: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)


class Feedback(Base):
    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id("feedback"))
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    outfit_id: Mapped[str | None] = mapped_column(ForeignKey("outfit.id"))
    decision: Mapped[FeedbackDecision] = mapped_column(Enum(FeedbackDecision), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)

    outfit: Mapped[Outfit | None] = relationship(back_populates="feedback")


__all__ = [
    "Base",
    "Item",
    "Outfit",
    "Preference",
    "Feedback",
    "Formality",
    "FeedbackDecision",
]
