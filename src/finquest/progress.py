"""User record schema and its persistence under a single store key."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import cast

from .storage import KeyValueStore

logger = logging.getLogger(__name__)

USER_KEY = "currentUser"
NO_USER_DATA = "No user data"
LEGACY_DATE_FORMAT = "%m/%d/%Y"

_KNOWN_KEYS = (
    "username",
    "avatar",
    "points",
    "badges",
    "walletBalance",
    "currentStreak",
    "lastLoginDate",
    "completedModules",
)


class DeserializationError(ValueError):
    """Stored or imported user data does not match the record schema."""


@dataclass(frozen=True)
class User:
    """The single persisted learner record."""

    username: str | None = None
    avatar: str | None = None
    points: int = 0
    badges: tuple[str, ...] = ()
    completed_modules: dict[str, bool] = field(default_factory=dict)
    current_streak: int = 1
    last_login_date: date | None = None
    wallet_balance: Decimal = Decimal(0)
    extras: dict[str, object] = field(default_factory=dict)

    def is_completed(self, module_id: str) -> bool:
        """Return whether a module is completed; absent entries count as not completed."""
        return bool(self.completed_modules.get(module_id, False))


def user_from_dict(raw: object) -> User:
    """Build a user from a decoded JSON document, applying defaults for absent fields."""
    if not isinstance(raw, dict):
        raise DeserializationError("User record must be a JSON object.")
    data = cast(dict[str, object], raw)

    points = _parse_int(data.get("points", 0), "points")
    if points < 0:
        raise DeserializationError("points cannot be negative.")

    streak = _parse_int(data.get("currentStreak", 1), "currentStreak")

    return User(
        username=_parse_optional_str(data.get("username"), "username"),
        avatar=_parse_optional_str(data.get("avatar"), "avatar"),
        points=points,
        badges=_parse_badges(data.get("badges", [])),
        completed_modules=_parse_completed_modules(data.get("completedModules", {})),
        current_streak=max(1, streak),
        last_login_date=_parse_date(data.get("lastLoginDate")),
        wallet_balance=_parse_decimal(data.get("walletBalance", 0), "walletBalance"),
        extras={key: value for key, value in data.items() if key not in _KNOWN_KEYS},
    )


def user_to_dict(user: User) -> dict[str, object]:
    """Return the JSON-ready document for a user."""
    payload: dict[str, object] = {}
    if user.username is not None:
        payload["username"] = user.username
    if user.avatar is not None:
        payload["avatar"] = user.avatar
    payload["points"] = user.points
    payload["badges"] = list(user.badges)
    payload["walletBalance"] = user.wallet_balance
    payload["currentStreak"] = user.current_streak
    if user.last_login_date is not None:
        payload["lastLoginDate"] = user.last_login_date.isoformat()
    payload["completedModules"] = dict(user.completed_modules)
    payload.update(user.extras)
    return payload


def dumps_user(user: User, *, indent: int | None = None) -> str:
    """Serialize a user to JSON text."""
    separators = None if indent is not None else (",", ":")
    return json.dumps(user_to_dict(user), indent=indent, separators=separators, default=_json_default)


def loads_user(text: str) -> User:
    """Parse JSON text into a user, raising DeserializationError on any failure."""
    try:
        raw = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as exc:
        raise DeserializationError(f"Invalid JSON: {exc.msg}") from exc
    return user_from_dict(raw)


class UserRepository:
    """Reads and writes the whole user record under one store key."""

    def __init__(self, store: KeyValueStore, key: str = USER_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> User | None:
        """Return the stored user, or None when nobody is signed in."""
        text = self.store.get(self.key)
        if text is None:
            return None
        return loads_user(text)

    def save(self, user: User) -> None:
        """Overwrite the stored record with the full user."""
        self.store.set(self.key, dumps_user(user))

    def clear(self) -> None:
        self.store.remove(self.key)

    def is_authenticated(self) -> bool:
        return self.store.get(self.key) is not None

    def export_json(self) -> str:
        """Return the stored record as pretty-printed JSON, or a sentinel when absent."""
        user = self.load()
        if user is None:
            return NO_USER_DATA
        return dumps_user(user, indent=2)

    def import_json(self, text: str) -> bool:
        """Replace the stored record with parsed JSON text; leave it untouched on failure."""
        try:
            user = loads_user(text)
        except DeserializationError as exc:
            logger.warning("Rejected user import: %s", exc)
            return False
        self.save(user)
        logger.info("Imported user record (%d points, %d badges)", user.points, len(user.badges))
        return True


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        as_float = float(value)
        if Decimal(repr(as_float)) == value:
            return as_float
        # too precise for a float; the loader accepts numeric strings
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _parse_int(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise DeserializationError(f"{name} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal | float) and math.isfinite(value) and value == int(value):
        return int(value)
    raise DeserializationError(f"{name} must be an integer.")


def _parse_optional_str(value: object, name: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise DeserializationError(f"{name} must be a string.")


def _parse_badges(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise DeserializationError("badges must be a list.")
    badges: list[str] = []
    for item in cast(list[object], value):
        if not isinstance(item, str):
            raise DeserializationError("badges must contain only strings.")
        if item not in badges:
            badges.append(item)
    return tuple(badges)


def _parse_completed_modules(value: object) -> dict[str, bool]:
    if not isinstance(value, dict):
        raise DeserializationError("completedModules must be an object.")
    return {str(key): bool(flag) for key, flag in cast(dict[str, object], value).items()}


def _parse_date(value: object) -> date | None:
    """Parse an ISO date, an ISO datetime, or the legacy M/D/YYYY form."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise DeserializationError("lastLoginDate must be a date string.")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, LEGACY_DATE_FORMAT).date()
    except ValueError as exc:
        raise DeserializationError(f"lastLoginDate is not a recognised date: {value!r}") from exc


def _parse_decimal(value: object, name: str) -> Decimal:
    if isinstance(value, bool):
        raise DeserializationError(f"{name} must be a number.")
    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int | str):
            number = Decimal(value)
        elif isinstance(value, float):
            number = Decimal(str(value))
        else:
            raise DeserializationError(f"{name} must be a number.")
    except InvalidOperation as exc:
        raise DeserializationError(f"{name} must be a number.") from exc
    if not number.is_finite():
        raise DeserializationError(f"{name} must be finite.")
    return number
