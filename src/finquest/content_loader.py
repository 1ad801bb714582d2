"""Load the course catalog from bundled JSON resources."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

from .models import DEFAULT_MODULE_POINTS, MODULE_IDS, LearningModule

CONTENT_PACKAGE = "finquest.content"
CATALOG_FILE = "modules.json"


def _module_from_dict(raw: dict[str, Any]) -> LearningModule:
    """Build a learning module from raw JSON content."""
    module_id = str(raw["id"]).strip()
    points = int(raw.get("points", DEFAULT_MODULE_POINTS))
    if points <= 0:
        raise ValueError(f"Module '{module_id}' must award a positive number of points.")
    badge = str(raw.get("badge", "")).strip()
    if not badge:
        raise ValueError(f"Module '{module_id}' has no badge.")
    return LearningModule(
        id=module_id,
        title=str(raw["title"]),
        description=str(raw.get("description", "")),
        badge=badge,
        points=points,
        order=int(raw.get("order", 0)),
    )


def _catalog_from_payload(payload: Any) -> dict[str, LearningModule]:
    """Validate a decoded catalog document and index it by module id."""
    if not isinstance(payload, dict) or not isinstance(payload.get("modules"), list):
        raise ValueError("Catalog root must be an object with a 'modules' list.")

    modules: dict[str, LearningModule] = {}
    for item in payload["modules"]:
        module = _module_from_dict(item)
        if module.id not in MODULE_IDS:
            raise ValueError(f"Unknown module id: {module.id}")
        if module.id in modules:
            raise ValueError(f"Duplicate module id: {module.id}")
        modules[module.id] = module

    missing = [module_id for module_id in MODULE_IDS if module_id not in modules]
    if missing:
        raise ValueError(f"Catalog is missing modules: {', '.join(missing)}")
    return dict(sorted(modules.items(), key=lambda pair: pair[1].order))


def load_modules() -> dict[str, LearningModule]:
    """Load the bundled catalog, ordered for display."""
    entry = resources.files(CONTENT_PACKAGE).joinpath(CATALOG_FILE)
    return _catalog_from_payload(json.loads(entry.read_text(encoding="utf-8-sig")))


def load_modules_from_file(path: Path) -> dict[str, LearningModule]:
    """Load a catalog from an arbitrary file for tests/tools."""
    return _catalog_from_payload(json.loads(path.read_text(encoding="utf-8-sig")))
