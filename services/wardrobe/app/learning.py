"""Preference learning from outfit feedback."""
from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from .persistence.models import Feedback, FeedbackDecision

COLOR_KEYWORDS = ["red", "blue", "green", "yellow", "purple", "pink", "orange", "black", "white", "gray"]
COMFORT_KEYWORDS = ["tight", "loose", "uncomfortable", "itchy", "heavy"]

# Rejecting an outfit for formality steps the preference one notch the other way.
_LESS_FORMAL = {"formal": "business", "business": "casual"}
_MORE_FORMAL = {"casual": "business"}


def apply_feedback(style: dict[str, Any], decision: str, reason: str) -> dict[str, Any]:
    """Return ``style`` updated with what a rejection reason reveals; accepted outfits change nothing."""
    updated = {
        **style,
        "avoidedColors": list(style.get("avoidedColors", [])),
        "comfortConstraints": list(style.get("comfortConstraints", [])),
    }
    if decision != FeedbackDecision.rejected.value:
        return updated

    lowered = reason.lower()
    if "color" in lowered:
        color = next((c for c in COLOR_KEYWORDS if c in lowered), None)
        if color and color not in updated["avoidedColors"]:
            updated["avoidedColors"].append(color)

    if "formal" in lowered:
        current = updated.get("formalityPreference", "casual")
        updated["formalityPreference"] = _LESS_FORMAL.get(current, current)
    if "casual" in lowered:
        current = updated.get("formalityPreference", "casual")
        updated["formalityPreference"] = _MORE_FORMAL.get(current, current)

    if "comfort" in lowered:
        keyword = next((k for k in COMFORT_KEYWORDS if k in lowered), None)
        if keyword and keyword not in updated["comfortConstraints"]:
            updated["comfortConstraints"].append(keyword)
    return updated


def feedback_stats(feedback: Iterable[Feedback]) -> dict[str, Any]:
    entries = list(feedback)
    accepted = sum(1 for entry in entries if entry.decision is FeedbackDecision.accepted)
    rejected = [entry for entry in entries if entry.decision is FeedbackDecision.rejected]
    words: Counter[str] = Counter(
        word for entry in rejected for word in entry.reason.lower().split() if len(word) > 3
    )
    return {
        "total": len(entries),
        "accepted": accepted,
        "rejected": len(rejected),
        "acceptance_rate": round(accepted / len(entries) * 100, 2) if entries else 0.0,
        "top_rejection_reasons": [{"reason": word, "count": count} for word, count in words.most_common(5)],
    }


__all__ = ["apply_feedback", "feedback_stats"]
