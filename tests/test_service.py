import json
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

from finquest import rules
from finquest.progress import USER_KEY
from finquest.service import DEMO_USERNAME, NotAuthenticatedError, TrackerService
from finquest.storage import MemoryStore
from finquest.validators import ExpenseResult, ValidationFailure


def test_operations_require_a_user(service: TrackerService) -> None:
    assert service.is_authenticated() is False
    with pytest.raises(NotAuthenticatedError):
        service.current_user()
    with pytest.raises(NotAuthenticatedError):
        service.complete_module("budgeting")
    with pytest.raises(NotAuthenticatedError):
        service.record_login()


def test_create_user_starts_without_login_history(service: TrackerService) -> None:
    user = service.create_user("  alice ")
    assert user.username == "alice"
    assert user.points == 0
    assert user.last_login_date is None
    assert set(user.completed_modules) == {"budgeting", "saving", "invest", "expense"}
    assert service.is_authenticated() is True


def test_create_user_requires_name(service: TrackerService) -> None:
    with pytest.raises(ValueError):
        service.create_user("   ")


def test_demo_user_matches_seed_values(service: TrackerService, today: date) -> None:
    user = service.init_demo_user(today)
    assert user.username == DEMO_USERNAME
    assert user.points == 50
    assert user.badges == ("Budget Beginner",)
    assert user.wallet_balance == Decimal(750)
    assert user.last_login_date == today
    assert service.current_user() == user


def test_complete_module_persists_and_is_idempotent(service: TrackerService, store: MemoryStore) -> None:
    service.create_user("bob")

    first = service.complete_module("saving")
    assert first.granted is True
    assert first.badge == "Saving Star"
    assert first.total_points == 50
    stored_after_first = store.get(USER_KEY)

    second = service.complete_module("saving")
    assert second.status == "already_completed"
    assert store.get(USER_KEY) == stored_after_first

    user = service.current_user()
    assert user.points == 50
    assert user.badges == ("Saving Star",)
    assert user.is_completed("saving") is True


def test_complete_unknown_module_raises_key_error(service: TrackerService) -> None:
    service.create_user("carol")
    with pytest.raises(KeyError):
        service.complete_module("crypto")


def test_completing_every_module(service: TrackerService) -> None:
    service.create_user("dana")
    for module_id in service.modules:
        service.complete_module(module_id)

    progress = service.progress()
    assert progress.all_complete is True
    assert progress.percentage == 100
    user = service.current_user()
    assert user.points == 200
    assert len(user.badges) == 4
    assert rules.profile_title(user.points) == rules.TITLE_MASTER


def test_each_operation_writes_whole_record(service: TrackerService, store: MemoryStore, today: date) -> None:
    store.set(USER_KEY, json.dumps({"username": "eve", "theme": "dark", "walletBalance": 20}))
    service.complete_module("invest")
    service.record_login(today)

    payload = json.loads(store.get(USER_KEY) or "")
    assert payload["theme"] == "dark"
    assert payload["walletBalance"] == 20
    assert payload["points"] == 50
    assert payload["lastLoginDate"] == today.isoformat()


def test_record_login_streak_over_days(service: TrackerService, today: date) -> None:
    service.create_user("frank")
    assert service.record_login(today).current_streak == 1
    assert service.record_login(today).current_streak == 1
    assert service.record_login(today + timedelta(days=1)).current_streak == 2
    assert service.record_login(today + timedelta(days=4)).current_streak == 1
    assert service.current_user().last_login_date == today + timedelta(days=4)


def test_dashboard_snapshot(service: TrackerService, today: date) -> None:
    service.init_demo_user(today - timedelta(days=1))
    dashboard = service.dashboard(today)

    assert dashboard.user.current_streak == 2
    assert dashboard.title == rules.TITLE_BEGINNER
    assert dashboard.streak_message == rules.STREAK_BASELINE
    assert dashboard.recommendation == rules.RECOMMEND_BEGINNER
    assert dashboard.milestone == rules.Milestone(milestone=100, points_needed=50, reached=False)
    assert dashboard.progress.completed_count == 1
    assert dashboard.progress.remaining == 3
    assert dashboard.stats.badges_count == 1


def test_check_expense_uses_wallet_without_spending(service: TrackerService, today: date) -> None:
    service.init_demo_user(today)
    result = service.check_expense("800")
    assert isinstance(result, ExpenseResult)
    assert result.will_overspend is True
    assert result.remaining_amount == Decimal(50)
    assert service.current_user().wallet_balance == Decimal(750)
    assert isinstance(service.check_expense("-1"), ValidationFailure)


def test_budget_and_goal_checks(service: TrackerService) -> None:
    assert service.check_budget(1000, 900).valid is True
    assert service.check_saving_goal(1000, 1200, 5000).valid is False


def test_export_import_and_clear(service: TrackerService, store: MemoryStore, today: date) -> None:
    assert service.export_user_data() == "No user data"
    service.init_demo_user(today)
    exported = service.export_user_data()
    before = store.get(USER_KEY)

    service.clear_all_data()
    assert service.is_authenticated() is False

    assert service.import_user_data(exported) is True
    assert store.get(USER_KEY) == before
    assert service.import_user_data("{broken") is False
    assert store.get(USER_KEY) == before


def test_service_with_sqlite_path(tmp_path: Path, today: date) -> None:
    db_path = tmp_path / "progress.db"
    service = TrackerService(db_path)
    service.init_demo_user(today)
    service.complete_module("expense")
    service.close()

    reopened = TrackerService(db_path)
    try:
        user = reopened.current_user()
        assert user.points == 100
        assert user.badges == ("Budget Beginner", "Expense Tracker")
    finally:
        reopened.close()


def test_get_module(service: TrackerService) -> None:
    module = service.get_module("budgeting")
    assert module is not None
    assert module.points == 50
    assert service.get_module("missing") is None
