import json
from datetime import date
from decimal import Decimal

import pytest

from finquest.progress import (
    NO_USER_DATA,
    USER_KEY,
    DeserializationError,
    User,
    UserRepository,
    dumps_user,
    loads_user,
    user_from_dict,
)
from finquest.storage import MemoryStore

LEGACY_RECORD = {
    "username": "DemoUser",
    "avatar": "💰",
    "points": 50,
    "badges": ["Budget Beginner"],
    "walletBalance": 750,
    "currentStreak": 1,
    "lastLoginDate": "3/9/2026",
    "completedModules": {"budgeting": True, "saving": False, "invest": False, "expense": False},
}


def test_reads_record_written_by_browser_version() -> None:
    user = user_from_dict(LEGACY_RECORD)
    assert user.username == "DemoUser"
    assert user.points == 50
    assert user.badges == ("Budget Beginner",)
    assert user.wallet_balance == Decimal(750)
    assert user.last_login_date == date(2026, 3, 9)
    assert user.is_completed("budgeting") is True
    assert user.is_completed("saving") is False


def test_missing_fields_get_defaults() -> None:
    user = user_from_dict({})
    assert user == User()
    assert user.current_streak == 1
    assert user.last_login_date is None
    assert user.is_completed("invest") is False


def test_streak_below_one_is_read_as_one() -> None:
    assert user_from_dict({"currentStreak": 0}).current_streak == 1


def test_duplicate_badges_collapse() -> None:
    user = user_from_dict({"badges": ["a", "b", "a"]})
    assert user.badges == ("a", "b")


def test_iso_datetime_is_truncated_to_date() -> None:
    user = user_from_dict({"lastLoginDate": "2026-03-09T23:59:00+05:30"})
    assert user.last_login_date == date(2026, 3, 9)


@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"points": -1},
        {"points": "50"},
        {"points": True},
        {"badges": "Budget Beginner"},
        {"badges": [1]},
        {"completedModules": ["budgeting"]},
        {"currentStreak": "two"},
        {"lastLoginDate": "yesterday"},
        {"lastLoginDate": 20260309},
        {"walletBalance": "lots"},
        {"username": 7},
    ],
)
def test_schema_violations_raise(raw: object) -> None:
    with pytest.raises(DeserializationError):
        user_from_dict(raw)


def test_loads_rejects_malformed_json() -> None:
    with pytest.raises(DeserializationError):
        loads_user("{not json")


def test_dumps_uses_camel_case_keys_and_keeps_unknown_fields() -> None:
    user = user_from_dict({**LEGACY_RECORD, "theme": "dark", "walletBalance": 12.5})
    payload = json.loads(dumps_user(user))
    assert payload["lastLoginDate"] == "2026-03-09"
    assert payload["walletBalance"] == 12.5
    assert payload["completedModules"]["budgeting"] is True
    assert payload["theme"] == "dark"


def test_wallet_balance_keeps_decimal_precision_through_storage() -> None:
    user = loads_user('{"walletBalance": 0.1}')
    assert user.wallet_balance == Decimal("0.1")
    assert loads_user(dumps_user(user)).wallet_balance == Decimal("0.1")


def test_wallet_balance_beyond_float_precision_is_written_exactly() -> None:
    balance = Decimal("1234567890.123456789012345")
    user = User(wallet_balance=balance)
    assert json.loads(dumps_user(user))["walletBalance"] == "1234567890.123456789012345"
    assert loads_user(dumps_user(user)).wallet_balance == balance


def test_repository_load_save_clear() -> None:
    store = MemoryStore()
    repo = UserRepository(store)
    assert repo.load() is None
    assert repo.is_authenticated() is False

    repo.save(User(username="sam", points=100))
    assert store.get(USER_KEY) is not None
    assert repo.is_authenticated() is True
    loaded = repo.load()
    assert loaded is not None
    assert loaded.points == 100

    repo.clear()
    assert repo.load() is None


def test_repository_load_raises_on_corrupt_record() -> None:
    repo = UserRepository(MemoryStore({USER_KEY: "{oops"}))
    with pytest.raises(DeserializationError):
        repo.load()


def test_export_without_user_returns_sentinel() -> None:
    assert UserRepository(MemoryStore()).export_json() == NO_USER_DATA


def test_export_is_pretty_printed() -> None:
    repo = UserRepository(MemoryStore())
    repo.save(User(username="sam"))
    exported = repo.export_json()
    assert "\n" in exported
    assert json.loads(exported)["username"] == "sam"


def test_import_export_round_trip_reproduces_stored_record() -> None:
    store = MemoryStore()
    repo = UserRepository(store)
    assert repo.import_json(json.dumps({**LEGACY_RECORD, "theme": "dark"})) is True
    before = store.get(USER_KEY)

    assert repo.import_json(repo.export_json()) is True
    assert store.get(USER_KEY) == before


def test_import_failure_leaves_store_untouched() -> None:
    store = MemoryStore()
    repo = UserRepository(store)
    repo.save(User(username="keep", points=150))
    before = store.get(USER_KEY)

    assert repo.import_json("not json at all") is False
    assert repo.import_json('{"points": -5}') is False
    assert repo.import_json(NO_USER_DATA) is False
    assert store.get(USER_KEY) == before


def test_repository_custom_key() -> None:
    store = MemoryStore()
    UserRepository(store, key="other").save(User(points=5))
    assert store.get(USER_KEY) is None
    assert store.get("other") is not None
