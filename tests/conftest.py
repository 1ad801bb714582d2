from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from finquest.service import TrackerService  # noqa: E402
from finquest.storage import MemoryStore  # noqa: E402


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def service(store: MemoryStore) -> Iterator[TrackerService]:
    svc = TrackerService(store)
    try:
        yield svc
    finally:
        svc.close()


@pytest.fixture
def today() -> date:
    return date(2026, 3, 10)
