"""Ledger and income rules that are independent from HTTP and DB.

Rule of thumb:
- OK: arithmetic on balances, income accrual, catalog defaults.
- Not OK: touching DB sessions, Redis, FastAPI, datetime.now(), etc.
"""

from datetime import datetime, timedelta
from typing import Iterable

from citymayor.errors import InsufficientFunds

SECONDS_PER_HOUR = 3600

DEFAULT_CATALOG = [
    {
        "name": "Cottage",
        "type": "residential",
        "price": 100,
        "income_per_hour": 5,
        "size_x": 1,
        "size_y": 1,
        "description": "A small home for a single family.",
    },
    {
        "name": "Apartment Block",
        "type": "residential",
        "price": 450,
        "income_per_hour": 25,
        "size_x": 2,
        "size_y": 2,
        "description": "Dense housing for a growing town.",
    },
    {
        "name": "Corner Shop",
        "type": "commercial",
        "price": 300,
        "income_per_hour": 20,
        "size_x": 2,
        "size_y": 2,
        "description": "Sells a little of everything.",
    },
    {
        "name": "Town Hall",
        "type": "public",
        "price": 800,
        "income_per_hour": 10,
        "size_x": 3,
        "size_y": 2,
        "description": "Where the mayor works.",
    },
    {
        "name": "Fountain",
        "type": "decoration",
        "price": 50,
        "income_per_hour": 0,
        "size_x": 1,
        "size_y": 1,
        "description": None,
    },
    {
        "name": "Cinema",
        "type": "entertainment",
        "price": 600,
        "income_per_hour": 40,
        "size_x": 3,
        "size_y": 3,
        "description": "Evening shows every day.",
    },
]


def debit_balance(balance: int, amount: int) -> int:
    """Return the balance left after paying amount

    Args:
        balance (int): Current gold of the player
        amount (int): Gold to pay

    Raises:
        ValueError: amount is negative
        InsufficientFunds: amount is greater than the balance

    Returns:
        int: New balance, never negative
    """
    if amount < 0:
        raise ValueError("amount must be >= 0")
    if amount > balance:
        raise InsufficientFunds(f"Not enough gold: {amount} needed, {balance} available.")
    return balance - amount


def total_income_per_hour(income_rates: Iterable[int]) -> int:
    return sum(income_rates)


def accrued_income(
    income_per_hour: int, last_collected_at: datetime, now: datetime
) -> tuple[int, datetime]:
    """Calculate the whole gold earned since the last collection

    Only the time that was actually paid out is consumed, so the fraction of a
    gold piece earned so far is kept for the next collection.

    Args:
        income_per_hour (int): Total income of all buildings owned by the player
        last_collected_at (datetime): Time of the previous collection
        now (datetime): Time of this collection

    Returns:
        tuple[int, datetime]: Gold to credit and the new last_collected_at
    """
    if income_per_hour <= 0 or now <= last_collected_at:
        return 0, max(now, last_collected_at)

    elapsed_seconds = (now - last_collected_at).total_seconds()
    amount = int(income_per_hour * elapsed_seconds // SECONDS_PER_HOUR)
    if amount == 0:
        return 0, last_collected_at

    paid_seconds = amount * SECONDS_PER_HOUR / income_per_hour
    return amount, last_collected_at + timedelta(seconds=paid_seconds)


def default_username(email: str | None) -> str:
    """Derive the mayor name shown in the game from the account e-mail."""
    if not email:
        return "player"
    local_part = email.split("@")[0]
    return local_part or "player"
