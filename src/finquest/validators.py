"""Money checks used by the budgeting, saving, and expense modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

Number = int | float | Decimal | str

DEFAULT_CURRENCY_SYMBOL = "₹"
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ValidationFailure:
    """Input rejected before any calculation; `reason` is shown to the user."""

    reason: str
    valid: bool = field(default=False, init=False)


@dataclass(frozen=True)
class BudgetResult:
    is_balanced: bool
    surplus: Decimal
    valid: bool = field(default=True, init=False)


@dataclass(frozen=True)
class SavingGoalResult:
    is_realistic: bool
    max_annual_savings: Decimal
    monthly_required: Decimal
    valid: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ExpenseResult:
    """Outcome of checking a purchase; overspending is flagged, never blocked."""

    will_overspend: bool
    new_balance: Decimal
    remaining_amount: Decimal
    valid: bool = field(default=True, init=False)


def to_decimal(value: object) -> Decimal | None:
    """Parse form or numeric input into a finite Decimal, or None when it is not a number."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, float):
            number = Decimal(str(value))
        elif isinstance(value, str):
            number = Decimal(value.strip())
        else:
            return None
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def is_valid_positive_number(value: object) -> bool:
    number = to_decimal(value)
    return number is not None and number > 0


def is_valid_non_negative_number(value: object) -> bool:
    number = to_decimal(value)
    return number is not None and number >= 0


def validate_budget(income: Number, expenses: Number) -> BudgetResult | ValidationFailure:
    """A budget is balanced when income covers expenses; surplus may be negative."""
    income_value = to_decimal(income)
    if income_value is None or income_value <= 0:
        return ValidationFailure("Income must be a positive number")
    expenses_value = to_decimal(expenses)
    if expenses_value is None or expenses_value < 0:
        return ValidationFailure("Expenses cannot be negative")

    return BudgetResult(is_balanced=income_value >= expenses_value, surplus=income_value - expenses_value)


def validate_saving_goal(income: Number, expenses: Number, goal: Number) -> SavingGoalResult | ValidationFailure:
    """Check an annual saving goal against twelve months of surplus.

    The budget has to leave a positive monthly surplus before a goal can be
    judged at all.
    """
    income_value = to_decimal(income)
    goal_value = to_decimal(goal)
    if income_value is None or income_value <= 0 or goal_value is None or goal_value <= 0:
        return ValidationFailure("Income and goal must be positive")
    expenses_value = to_decimal(expenses)
    if expenses_value is None or expenses_value < 0:
        return ValidationFailure("Expenses cannot be negative")

    monthly_surplus = income_value - expenses_value
    if monthly_surplus <= 0:
        return ValidationFailure("Monthly surplus is zero or negative. Balance your budget first.")

    max_annual_savings = monthly_surplus * 12
    return SavingGoalResult(
        is_realistic=goal_value <= max_annual_savings,
        max_annual_savings=max_annual_savings,
        monthly_required=goal_value / 12,
    )


def validate_expense(amount: Number, current_balance: Number) -> ExpenseResult | ValidationFailure:
    amount_value = to_decimal(amount)
    if amount_value is None or amount_value <= 0:
        return ValidationFailure("Amount must be positive")
    balance = to_decimal(current_balance)
    if balance is None:
        return ValidationFailure("Current balance must be a number")

    new_balance = balance - amount_value
    return ExpenseResult(will_overspend=new_balance < 0, new_balance=new_balance, remaining_amount=abs(new_balance))


def format_currency(amount: Number, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Format an amount for display with two decimal places."""
    number = to_decimal(amount)
    if number is None:
        raise ValueError(f"Not a number: {amount!r}")
    rounded = number.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if rounded < 0:
        return f"-{symbol}{-rounded}"
    return f"{symbol}{rounded}"
