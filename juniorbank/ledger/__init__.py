"""Mini README: Multi-currency ledger for camp participants.

The `models` module defines the frozen ledger entities, `service` manages
the roster and applies transactions, and `demo_data` seeds a preview roster
on request. Import from this package rather than the individual modules.
"""

from .demo_data import build_demo_session, seed_demo_roster
from .models import (
    Balance,
    GroupExpense,
    Participant,
    Session,
    Transaction,
    TransactionType,
    apply_transaction,
)
from .service import LedgerEvent, LedgerService

__all__ = [
    "Balance",
    "GroupExpense",
    "LedgerEvent",
    "LedgerService",
    "Participant",
    "Session",
    "Transaction",
    "TransactionType",
    "apply_transaction",
    "build_demo_session",
    "seed_demo_roster",
]
