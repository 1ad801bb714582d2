"""CLI entrypoint for the financial-literacy progress tracker."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from . import __version__
from .progress import DeserializationError
from .rules import AwardOutcome
from .service import Dashboard, NotAuthenticatedError, TrackerService
from .validators import ValidationFailure, format_currency

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
MENU_QUIT_COMMANDS = {"q"}
MENU_BACK_COMMANDS = {"b"}
DEFAULT_DB_PATH = Path(".finquest") / "progress.db"
COMMANDS = ["play", "status", "demo", "reset", "export", "import"]

INVEST_QUESTION = "Which choice spreads your risk across many companies?"
INVEST_CHOICES = {"a": "Putting all savings into one stock", "b": "A diversified index fund"}
INVEST_ANSWER = "b"


class QuitApp(Exception):
    """Signal immediate app exit from nested menu flows."""


def _service(db_path: Path | None = None) -> TrackerService:
    """Create app service backed by the local database."""
    return TrackerService(db_path or DEFAULT_DB_PATH)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finquest", description="Financial literacy progress tracker")
    parser.add_argument("command", nargs="?", default="play", choices=COMMANDS)
    parser.add_argument("path", nargs="?", help="file for export/import (stdout/stdin when omitted)")
    parser.add_argument("--store", type=Path, default=DEFAULT_DB_PATH, help="SQLite file holding the user record")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "play":
        return play_shell(db_path=args.store)

    service = _service(args.store)
    try:
        if args.command == "status":
            return _status_command(service, print)
        if args.command == "demo":
            service.init_demo_user()
            print("Demo user created.")
            return 0
        if args.command == "reset":
            service.clear_all_data()
            print("All user data cleared.")
            return 0
        if args.command == "export":
            return _export_command(service, args.path, print)
        return _import_command(service, args.path, print)
    except (OSError, ValueError) as exc:
        print(f"{args.command.capitalize()} failed: {exc}")
        return 1
    finally:
        service.close()


def _status_command(service: TrackerService, print_fn: PrintFn) -> int:
    try:
        dashboard = service.dashboard()
    except NotAuthenticatedError:
        print_fn("No user data. Run `finquest demo` or `finquest play` to start.")
        return 1
    except DeserializationError as exc:
        print_fn(f"Stored user data is unreadable: {exc}")
        return 1
    _print_dashboard(dashboard, print_fn)
    return 0


def _export_command(service: TrackerService, path: str | None, print_fn: PrintFn) -> int:
    text = service.export_user_data()
    if path is None:
        print_fn(text)
        return 0
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    print_fn(f"Exported user data to {path}")
    return 0


def _import_command(service: TrackerService, path: str | None, print_fn: PrintFn) -> int:
    text = sys.stdin.read() if path is None else Path(path).read_text(encoding="utf-8")
    if service.import_user_data(text):
        print_fn("User data imported.")
        return 0
    print_fn("Import failed: invalid user data.")
    return 1


def play_shell(input_fn: InputFn = input, print_fn: PrintFn = print, db_path: Path | None = None) -> int:
    """Run persistent menu-driven shell."""
    service = _service(db_path)
    try:
        try:
            while True:
                if not service.is_authenticated() and not _entry_flow(service, input_fn, print_fn):
                    return 0
                try:
                    dashboard = service.dashboard()
                except DeserializationError as exc:
                    print_fn(f"Stored user data is unreadable: {exc}")
                    print_fn("Run `finquest reset` or import a valid export.")
                    return 1
                user = dashboard.user
                print_fn("\n=== Money Quest ===")
                print_fn(f"Profile: {user.username or 'Learner'} - {dashboard.title}")
                print_fn(f"Points: {user.points}  Streak: {user.current_streak} day(s)")
                print_fn("1) Dashboard")
                print_fn("2) Learn a module")
                print_fn("3) Export data")
                print_fn("4) Import data")
                print_fn("5) Sign out and clear data")
                print_fn("q) Quit")
                choice = input_fn("Choose: ").strip().lower()

                if choice == "1":
                    _print_dashboard(dashboard, print_fn)
                elif choice == "2":
                    _learn_module_flow(service, input_fn, print_fn)
                elif choice == "3":
                    _export_flow(service, input_fn, print_fn)
                elif choice == "4":
                    _import_flow(service, input_fn, print_fn)
                elif choice == "5":
                    _sign_out_flow(service, input_fn, print_fn)
                elif choice in MENU_QUIT_COMMANDS:
                    return 0
                else:
                    print_fn("Invalid choice.")
        except QuitApp:
            return 0
    finally:
        service.close()


def _entry_flow(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> bool:
    """Get the user signed in; return False if they quit instead."""
    while True:
        print_fn("\n=== Welcome ===")
        print_fn("No profile found.")
        print_fn("n) New profile")
        print_fn("d) Demo profile")
        print_fn("i) Import profile")
        print_fn("q) Quit")
        choice = input_fn("Choose: ").strip().lower()
        if choice in MENU_QUIT_COMMANDS:
            return False
        if choice == "n":
            name = input_fn("Your name: ").strip()
            if not name:
                print_fn("Name is required.")
                continue
            service.create_user(name)
            return True
        if choice == "d":
            service.init_demo_user()
            return True
        if choice == "i":
            _import_flow(service, input_fn, print_fn)
            if service.is_authenticated():
                return True
            continue
        print_fn("Invalid choice.")


def _print_dashboard(dashboard: Dashboard, print_fn: PrintFn) -> None:
    """Print the dashboard summary."""
    user = dashboard.user
    progress = dashboard.progress
    print_fn("\n=== Dashboard ===")
    print_fn(f"Title: {dashboard.title}")
    print_fn(f"Points: {user.points}")
    print_fn(f"Badges: {', '.join(user.badges) if user.badges else 'none yet'}")
    print_fn(f"Wallet: {format_currency(user.wallet_balance)}")
    print_fn(f"Login streak: {user.current_streak} day(s) - {dashboard.streak_message}")
    print_fn(f"Progress: {round(progress.percentage)}% Complete")
    if progress.all_complete:
        print_fn("Congratulations! All modules completed! You are now a Financial Expert!")
    else:
        print_fn(f"{progress.remaining} module(s) remaining")
    milestone = dashboard.milestone
    if milestone.reached:
        print_fn(f"Every milestone reached ({milestone.milestone} points).")
    else:
        print_fn(f"Next milestone: {milestone.milestone} points ({milestone.points_needed} to go)")
    print_fn(f"Recommendation: {dashboard.recommendation}")


def _learn_module_flow(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Pick a module and run its exercise."""
    user = service.current_user()
    modules = list(service.modules.values())
    print_fn("\n=== Learn Module ===")
    for idx, module in enumerate(modules, start=1):
        status = "completed" if user.is_completed(module.id) else "new"
        print_fn(f"{idx}) {module.title:<18} {status:<9} {module.points} pts, badge: {module.badge}")
    print_fn("b) Back")
    print_fn("q) Quit")
    choice = input_fn("Choose module: ").strip().lower()
    if choice in MENU_BACK_COMMANDS:
        return
    if choice in MENU_QUIT_COMMANDS:
        raise QuitApp()
    if not choice.isdigit() or not (0 < int(choice) <= len(modules)):
        print_fn("Invalid choice.")
        return

    module = modules[int(choice) - 1]
    print_fn(f"\n{module.title}")
    print_fn(module.description)
    exercises = {
        "budgeting": _budgeting_exercise,
        "saving": _saving_exercise,
        "invest": _invest_exercise,
        "expense": _expense_exercise,
    }
    if exercises[module.id](service, input_fn, print_fn):
        _print_award(service.complete_module(module.id), print_fn)


def _budgeting_exercise(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> bool:
    income = input_fn("Monthly income: ").strip()
    expenses = input_fn("Monthly expenses: ").strip()
    result = service.check_budget(income, expenses)
    if isinstance(result, ValidationFailure):
        print_fn(result.reason)
        return False
    if not result.is_balanced:
        print_fn(f"Your budget is not balanced: you overspend by {format_currency(-result.surplus)}.")
        return False
    print_fn(f"Balanced budget! Monthly surplus: {format_currency(result.surplus)}")
    return True


def _saving_exercise(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> bool:
    income = input_fn("Monthly income: ").strip()
    expenses = input_fn("Monthly expenses: ").strip()
    goal = input_fn("Annual saving goal: ").strip()
    result = service.check_saving_goal(income, expenses, goal)
    if isinstance(result, ValidationFailure):
        print_fn(result.reason)
        return False
    print_fn(f"You can save up to {format_currency(result.max_annual_savings)} a year.")
    print_fn(f"Your goal needs {format_currency(result.monthly_required)} a month.")
    if not result.is_realistic:
        print_fn("That goal is not realistic yet. Try a smaller goal.")
        return False
    print_fn("Realistic goal!")
    return True


def _invest_exercise(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> bool:
    print_fn(INVEST_QUESTION)
    for key, text in INVEST_CHOICES.items():
        print_fn(f"{key}) {text}")
    answer = input_fn("Answer: ").strip().lower()
    if answer != INVEST_ANSWER:
        print_fn("Not quite. Spreading money across many assets lowers risk.")
        return False
    print_fn("Correct.")
    return True


def _expense_exercise(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> bool:
    amount = input_fn("Purchase amount: ").strip()
    result = service.check_expense(amount)
    if isinstance(result, ValidationFailure):
        print_fn(result.reason)
        return False
    if result.will_overspend:
        print_fn(f"Warning: this purchase overspends your wallet by {format_currency(result.remaining_amount)}.")
    else:
        print_fn(f"Balance after purchase: {format_currency(result.new_balance)}")
    return True


def _print_award(outcome: AwardOutcome, print_fn: PrintFn) -> None:
    if not outcome.granted:
        print_fn("You have already completed this module!")
        return
    print_fn(f'Success! You earned {outcome.points_awarded} points and the "{outcome.badge}" badge!')
    if outcome.tip:
        print_fn(outcome.tip)


def _export_flow(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Export the user record to a file, or show it when no path is given."""
    print_fn("\n=== Export Data ===")
    path_text = input_fn("Export file path (blank = show here): ").strip()
    if not path_text:
        print_fn(service.export_user_data())
        return
    try:
        _export_command(service, path_text, print_fn)
    except (OSError, ValueError) as exc:
        print_fn(f"Export failed: {exc}")


def _import_flow(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Replace the user record from a JSON file."""
    print_fn("\n=== Import Data ===")
    path_text = input_fn("Import file path: ").strip()
    if not path_text:
        print_fn("File path is required.")
        return
    try:
        _import_command(service, path_text, print_fn)
    except (OSError, ValueError) as exc:
        print_fn(f"Import failed: {exc}")


def _sign_out_flow(service: TrackerService, input_fn: InputFn, print_fn: PrintFn) -> None:
    print_fn("WARNING: This permanently deletes your points, badges, and streak.")
    confirm = input_fn("Type YES to confirm: ").strip()
    if confirm != "YES":
        print_fn("Sign out cancelled.")
        return
    service.clear_all_data()
    print_fn("Signed out. All data cleared.")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
