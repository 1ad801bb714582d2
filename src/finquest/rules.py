"""Pure progress rules: module rewards, login streaks, titles, and milestones.

Every function here takes values and returns new values. Loading and
saving the user record is the caller's job (see `finquest.service`).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Literal

from .models import MODULE_IDS, TOTAL_MODULES
from .progress import User

MILESTONES: tuple[int, ...] = (50, 100, 150, 200, 250, 300)

FALLBACK_TIP = "Great job! Keep learning."
TIPS: dict[str, str] = {
    "budgeting": "Tip: Follow the 50-30-20 rule to manage income efficiently.",
    "saving": "Tip: Always build an emergency fund before investing.",
    "invest": "Tip: Diversification reduces financial risk.",
    "expense": "Tip: Small daily expenses accumulate over time.",
}

STREAK_MASTER = "Financial Discipline Master!"
STREAK_BUILDER = "Consistency Builder!"
STREAK_BASELINE = "Keep it up!"

TITLE_MASTER = "Money Master"
TITLE_PLANNER = "Smart Planner"
TITLE_BEGINNER = "Financial Beginner"

RECOMMEND_BEGINNER = "We recommend you start with Budgeting Basics! Master the fundamentals first."
RECOMMEND_ADVANCED = "Great progress! Try Invest Smart for advanced learning."

AwardStatus = Literal["granted", "already_completed"]


@dataclass(frozen=True)
class AwardOutcome:
    """Result of trying to reward a module completion."""

    status: AwardStatus
    module_id: str
    badge: str
    points_awarded: int
    total_points: int
    tip: str | None

    @property
    def granted(self) -> bool:
        return self.status == "granted"


@dataclass(frozen=True)
class ProgressSummary:
    """Module completion progress across the fixed module set."""

    completed_count: int
    percentage: float
    remaining: int

    @property
    def all_complete(self) -> bool:
        return self.completed_count == TOTAL_MODULES


@dataclass(frozen=True)
class Milestone:
    """Next point threshold to aim for."""

    milestone: int
    points_needed: int
    reached: bool


@dataclass(frozen=True)
class GamificationStats:
    """Headline numbers for a user."""

    total_points: int
    badges_count: int
    modules_completed: int
    total_modules: int
    completion_percentage: float


def tip_for_module(module_id: str) -> str:
    """Return the tip shown after completing a module."""
    return TIPS.get(module_id, FALLBACK_TIP)


def award_module_completion(user: User, module_id: str, badge_name: str, points: int) -> tuple[User, AwardOutcome]:
    """Reward a module at most once.

    A repeat call leaves the user unchanged and reports `already_completed`.
    A badge that is already held is never added a second time, even when a
    different module grants it.
    """
    if module_id not in MODULE_IDS:
        raise KeyError(module_id)

    if user.is_completed(module_id):
        return user, AwardOutcome(
            status="already_completed",
            module_id=module_id,
            badge=badge_name,
            points_awarded=0,
            total_points=user.points,
            tip=None,
        )

    badges = user.badges if badge_name in user.badges else user.badges + (badge_name,)
    updated = replace(
        user,
        badges=badges,
        points=user.points + points,
        completed_modules={**user.completed_modules, module_id: True},
    )
    return updated, AwardOutcome(
        status="granted",
        module_id=module_id,
        badge=badge_name,
        points_awarded=points,
        total_points=updated.points,
        tip=tip_for_module(module_id),
    )


def completed_count(user: User) -> int:
    """Count completed modules, ignoring ids outside the fixed set."""
    return sum(1 for module_id in MODULE_IDS if user.is_completed(module_id))


def compute_progress(user: User) -> ProgressSummary:
    done = completed_count(user)
    return ProgressSummary(
        completed_count=done,
        percentage=done / TOTAL_MODULES * 100,
        remaining=TOTAL_MODULES - done,
    )


def update_login_streak(user: User, today: date) -> User:
    """Advance the daily login streak for a visit on `today`.

    Same calendar day: unchanged. Next calendar day: streak + 1. Any other
    gap, including a date earlier than the last login: streak resets to 1.
    """
    last = user.last_login_date
    if last is None:
        return replace(user, current_streak=1, last_login_date=today)

    diff_days = (today - last).days
    if diff_days == 0:
        return user
    if diff_days == 1:
        return replace(user, current_streak=(user.current_streak or 1) + 1, last_login_date=today)
    return replace(user, current_streak=1, last_login_date=today)


def streak_message(streak: int) -> str:
    if streak >= 7:
        return STREAK_MASTER
    if streak >= 3:
        return STREAK_BUILDER
    return STREAK_BASELINE


def profile_title(points: int) -> str:
    if points >= 200:
        return TITLE_MASTER
    if points >= 100:
        return TITLE_PLANNER
    return TITLE_BEGINNER


def recommendation(points: int) -> str:
    """Static two-branch recommendation rule keyed on points."""
    if points < 100:
        return RECOMMEND_BEGINNER
    return RECOMMEND_ADVANCED


def next_milestone(points: int) -> Milestone:
    """Return the first milestone above `points`, or the last one once all are passed."""
    for milestone in MILESTONES:
        if milestone > points:
            return Milestone(milestone=milestone, points_needed=milestone - points, reached=False)
    return Milestone(milestone=MILESTONES[-1], points_needed=0, reached=True)


def gamification_stats(user: User) -> GamificationStats:
    progress = compute_progress(user)
    return GamificationStats(
        total_points=user.points,
        badges_count=len(user.badges),
        modules_completed=progress.completed_count,
        total_modules=TOTAL_MODULES,
        completion_percentage=progress.percentage,
    )
