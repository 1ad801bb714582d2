"""finquest: progress, points, and badges for a financial-literacy course."""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]

_VERSION_LINE = re.compile(r'^version\s*=\s*"([^"]+)"\s*$')


def _version_from_pyproject() -> str | None:
    """Read `[project].version` from a nearby pyproject.toml when running from source."""
    for base in Path(__file__).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        section = ""
        for line in pyproject.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped.startswith("[") and stripped.endswith("]"):
                section = stripped
            elif section == "[project]" and (match := _VERSION_LINE.match(stripped)):
                return match.group(1)
        return None
    return None


try:
    __version__ = _version_from_pyproject() or version("finquest")
except PackageNotFoundError:
    __version__ = "0+unknown"
