"""
Domain events published after financial writes commit.

Subscribers (quest progression) react to them; the publishing write never
depends on a subscriber succeeding.
"""
from dataclasses import dataclass

EXPENSE_LOGGED = "expense_logged"
RECEIPT_SCANNED = "receipt_scanned"


@dataclass(frozen=True)
class ExpenseLogged:
    """A member logged an expense in a budget category."""
    user_id: int
    household_id: int
    category: str

    event_type = EXPENSE_LOGGED


@dataclass(frozen=True)
class ReceiptScanned:
    """A receipt was confirmed (items assigned) for the first time."""
    user_id: int
    household_id: int

    event_type = RECEIPT_SCANNED
