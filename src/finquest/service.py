"""Application service: load the user record, apply one rule, save it back."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path

from . import rules
from .content_loader import load_modules
from .models import MODULE_IDS, LearningModule
from .progress import User, UserRepository
from .storage import KeyValueStore, SqliteStore
from .validators import (
    BudgetResult,
    ExpenseResult,
    Number,
    SavingGoalResult,
    ValidationFailure,
    validate_budget,
    validate_expense,
    validate_saving_goal,
)

logger = logging.getLogger(__name__)

DEMO_USERNAME = "DemoUser"
DEMO_AVATAR = "💰"
DEMO_WALLET_BALANCE = Decimal(750)
NEW_USER_WALLET_BALANCE = Decimal(1000)


class NotAuthenticatedError(LookupError):
    """No user record is stored; the caller should send the user to sign-in."""


@dataclass(frozen=True)
class Dashboard:
    """Everything the dashboard shows for one user on one day."""

    user: User
    progress: rules.ProgressSummary
    title: str
    streak_message: str
    recommendation: str
    milestone: rules.Milestone
    stats: rules.GamificationStats


class TrackerService:
    """Coordinates the stored user record with the progress rules."""

    def __init__(self, store: KeyValueStore | Path | str) -> None:
        """Initialize service with a key-value store or a SQLite database path."""
        self.modules: dict[str, LearningModule] = load_modules()
        if isinstance(store, Path | str):
            self.store: KeyValueStore = SqliteStore(store)
            self._owns_store = True
        else:
            self.store = store
            self._owns_store = False
        self.users = UserRepository(self.store)

    def is_authenticated(self) -> bool:
        return self.users.is_authenticated()

    def current_user(self) -> User:
        """Return the stored user, raising NotAuthenticatedError when there is none."""
        user = self.users.load()
        if user is None:
            raise NotAuthenticatedError("No user is signed in.")
        return user

    def get_module(self, module_id: str) -> LearningModule | None:
        return self.modules.get(module_id)

    def create_user(self, username: str) -> User:
        """Start a fresh record with no login history, replacing any stored one."""
        name = username.strip()
        if not name:
            raise ValueError("Username is required.")
        user = User(
            username=name,
            wallet_balance=NEW_USER_WALLET_BALANCE,
            completed_modules={module_id: False for module_id in MODULE_IDS},
        )
        self.users.save(user)
        logger.info("Created user %s", name)
        return user

    def init_demo_user(self, today: date | None = None) -> User:
        """Store a sample user who has finished the budgeting module."""
        user = User(
            username=DEMO_USERNAME,
            avatar=DEMO_AVATAR,
            points=50,
            badges=(self.modules["budgeting"].badge,),
            wallet_balance=DEMO_WALLET_BALANCE,
            current_streak=1,
            last_login_date=today or date.today(),
            completed_modules={module_id: module_id == "budgeting" for module_id in MODULE_IDS},
        )
        self.users.save(user)
        logger.info("Initialized demo user")
        return user

    def clear_all_data(self) -> None:
        self.users.clear()
        logger.info("Cleared stored user data")

    def complete_module(self, module_id: str) -> rules.AwardOutcome:
        """Reward a module with its catalog badge and points, at most once."""
        module = self.get_module(module_id)
        if module is None:
            raise KeyError(module_id)
        user = self.current_user()
        updated, outcome = rules.award_module_completion(user, module.id, module.badge, module.points)
        if outcome.granted:
            self.users.save(updated)
            logger.info("Granted %s: +%d points, badge %r", module.id, outcome.points_awarded, outcome.badge)
        else:
            logger.debug("Module %s already completed; nothing granted", module.id)
        return outcome

    def record_login(self, today: date | None = None) -> User:
        """Apply today's visit to the login streak."""
        user = self.current_user()
        updated = rules.update_login_streak(user, today or date.today())
        if updated != user:
            self.users.save(updated)
            logger.debug("Login streak is now %d", updated.current_streak)
        return updated

    def progress(self) -> rules.ProgressSummary:
        return rules.compute_progress(self.current_user())

    def dashboard(self, today: date | None = None) -> Dashboard:
        """Record today's login and return the dashboard snapshot."""
        user = self.record_login(today)
        return Dashboard(
            user=user,
            progress=rules.compute_progress(user),
            title=rules.profile_title(user.points),
            streak_message=rules.streak_message(user.current_streak),
            recommendation=rules.recommendation(user.points),
            milestone=rules.next_milestone(user.points),
            stats=rules.gamification_stats(user),
        )

    def check_budget(self, income: Number, expenses: Number) -> BudgetResult | ValidationFailure:
        return validate_budget(income, expenses)

    def check_saving_goal(
        self, income: Number, expenses: Number, goal: Number
    ) -> SavingGoalResult | ValidationFailure:
        return validate_saving_goal(income, expenses, goal)

    def check_expense(self, amount: Number) -> ExpenseResult | ValidationFailure:
        """Check a purchase against the stored wallet balance without spending it."""
        return validate_expense(amount, self.current_user().wallet_balance)

    def export_user_data(self) -> str:
        return self.users.export_json()

    def import_user_data(self, text: str) -> bool:
        return self.users.import_json(text)

    def close(self) -> None:
        """Close resources opened by this service."""
        if self._owns_store:
            close = getattr(self.store, "close", None)
            if close is not None:
                close()
