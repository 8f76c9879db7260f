"""Agent exception hierarchy."""
from __future__ import annotations


class AgentError(RuntimeError):
    """Base class for failures surfaced by an agent's public methods."""


class InvalidPlanError(AgentError):
    """The plan's dependency graph is cyclic or names unknown steps."""

    def __init__(self, message: str, step_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.step_ids = step_ids or []


__all__ = ["AgentError", "InvalidPlanError"]
