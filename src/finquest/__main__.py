"""Support `python -m finquest`."""

from __future__ import annotations

from .main import main_entry


def main() -> None:
    """Hand off to the console script entrypoint."""
    main_entry()


if __name__ == "__main__":  # pragma: no cover
    main()
