"""Course catalog models."""

from __future__ import annotations

from dataclasses import dataclass

MODULE_IDS: tuple[str, ...] = ("budgeting", "saving", "invest", "expense")
TOTAL_MODULES = len(MODULE_IDS)
DEFAULT_MODULE_POINTS = 50


@dataclass(frozen=True)
class LearningModule:
    """One learning unit a user can complete for points and a badge."""

    id: str
    title: str
    description: str
    badge: str
    points: int
    order: int
