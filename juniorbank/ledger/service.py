"""Mini README: Roster and ledger orchestration for a camp session.

Structure:
    * LedgerEvent - notification published after every committed mutation.
    * LedgerService - owns the roster, applies transactions, splits group
      expenses and answers the read-only queries the interface renders.

The service keeps everything in memory. Mutations run under a single
re-entrant lock, so concurrent callers are serialised. Subscribers are
notified synchronously once the new state is in place; a failing listener
is logged and never undoes or masks the committed change. Reads copy the
stored collections under the same lock before filtering.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union
from uuid import uuid4

from ..currency import CurrencyCatalog, get_catalog
from ..errors import DuplicateParticipant, LedgerError, UnknownParticipant
from .models import (
    Balance,
    GroupExpense,
    Participant,
    Session,
    Transaction,
    TransactionType,
    apply_transaction,
)


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """Change notification delivered to subscribers."""

    kind: str
    participant_ids: Tuple[str, ...]


LedgerListener = Callable[[LedgerEvent], None]


def _default_id() -> str:
    return str(uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerService:
    """Manage participants, balances and the append-only transaction history."""

    def __init__(
        self,
        session: Session,
        *,
        catalog: Optional[CurrencyCatalog] = None,
        participants: Optional[Iterable[Participant]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._session = session
        self._catalog = catalog or get_catalog()
        self._new_id = id_factory or _default_id
        self._now = clock or _utc_now
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._participants: Dict[str, Participant] = {}
        self._transactions: List[Transaction] = []
        self._group_expenses: Dict[str, GroupExpense] = {}
        self._listeners: List[LedgerListener] = []
        for participant in participants or ():
            self._register(participant)
        self._logger.debug(
            "Ledger for session %s initialised with %s participants",
            session.session_id,
            len(self._participants),
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def catalog(self) -> CurrencyCatalog:
        return self._catalog

    def new_id(self) -> str:
        """Issue an identity from the configured source."""

        return self._new_id()

    # Notifications

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """Register ``listener`` for change events and return an unsubscribe callable."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, kind: str, participant_ids: Iterable[str]) -> None:
        event = LedgerEvent(kind=kind, participant_ids=tuple(participant_ids))
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                self._logger.exception("Ledger listener failed handling %s event", kind)

    # Roster

    def _register(self, participant: Participant) -> None:
        if participant.participant_id in self._participants:
            raise DuplicateParticipant(f"Participant {participant.participant_id} already exists.")
        self._participants[participant.participant_id] = participant

    def add_participant(self, participant: Participant) -> None:
        with self._lock:
            self._register(participant)
            self._logger.info("Added participant: %s", participant.display_name)
            self._publish("participant_added", [participant.participant_id])

    def get_participant(self, participant_id: str) -> Participant:
        """Retrieve a participant, raising ``UnknownParticipant`` when missing."""

        with self._lock:
            try:
                return self._participants[participant_id]
            except KeyError as error:
                raise UnknownParticipant(participant_id) from error

    def update_participant(self, participant: Participant) -> None:
        """Replace the stored participant carrying the same id."""

        with self._lock:
            self.get_participant(participant.participant_id)
            self._participants[participant.participant_id] = participant
            self._logger.info("Updated participant: %s", participant.display_name)
            self._publish("participant_updated", [participant.participant_id])

    def remove_participant(self, participant_id: str) -> None:
        """Withdraw a participant; their balances go with them, history stays."""

        with self._lock:
            participant = self.get_participant(participant_id)
            del self._participants[participant_id]
            self._logger.info("Removed participant: %s", participant.display_name)
            self._publish("participant_removed", [participant_id])

    def list_participants(self, filter_text: str = "") -> List[Participant]:
        """Return participants matching ``filter_text`` sorted by last name.

        Sorting is ordinal and stable, so equal last names keep enrollment order.
        """

        with self._lock:
            participants = list(self._participants.values())
        matches = [participant for participant in participants if participant.matches(filter_text)]
        return sorted(matches, key=lambda participant: participant.last_name)

    # Balance queries

    def primary_balance(self, participant_id: str) -> Optional[Balance]:
        return self.get_participant(participant_id).primary_balance(self._catalog)

    def total_balance_in_base(self, participant_id: str) -> float:
        return self.get_participant(participant_id).total_balance_in_base(self._catalog)

    def upsert_balance(self, participant_id: str, balance: Balance) -> Participant:
        """Replace or add a balance directly, e.g. when opening a new currency."""

        with self._lock:
            updated = self.get_participant(participant_id).upsert_balance(balance)
            self._participants[participant_id] = updated
            self._logger.info(
                "Set %s balance for %s to %s",
                balance.currency_code,
                updated.display_name,
                balance.amount,
            )
            self._publish("balance_updated", [participant_id])
            return updated

    # Transactions

    def transactions_for(self, participant_id: str) -> List[Transaction]:
        """History for one participant in recording order."""

        with self._lock:
            history = list(self._transactions)
        return [transaction for transaction in history if transaction.participant_id == participant_id]

    @property
    def group_expenses(self) -> List[GroupExpense]:
        with self._lock:
            return list(self._group_expenses.values())

    def apply_transaction(self, transaction: Transaction) -> Participant:
        """Fold ``transaction`` into its participant's balance and log it in history."""

        with self._lock:
            participant = self.get_participant(transaction.participant_id)
            try:
                updated = apply_transaction(participant, transaction)
            except LedgerError as error:
                self._logger.warning("Rejected transaction %s: %s", transaction.transaction_id, error)
                raise
            self._participants[updated.participant_id] = updated
            self._transactions.append(transaction)
            self._logger.info(
                "Applied %s of %s %s to %s",
                transaction.transaction_type.value,
                transaction.amount,
                transaction.currency_code,
                updated.display_name,
            )
            self._publish("transaction_applied", [updated.participant_id])
            return updated

    def record_transaction(
        self,
        participant_id: str,
        transaction_type: Union[TransactionType, str],
        amount: float,
        currency_code: str,
        description: str = "",
    ) -> Transaction:
        """Create a transaction stamped with a new id and the current instant, then apply it."""

        transaction = Transaction.record(
            transaction_id=self._new_id(),
            participant_id=participant_id,
            transaction_type=TransactionType.from_str(transaction_type),
            amount=amount,
            currency_code=currency_code,
            description=description,
            created_at=self._now(),
            catalog=self._catalog,
        )
        self.apply_transaction(transaction)
        return transaction

    def create_group_expense(
        self,
        name: str,
        total_amount: float,
        currency_code: str,
        participant_ids: Iterable[str],
    ) -> Tuple[GroupExpense, List[Transaction]]:
        """Split a shared cost evenly and charge every participant.

        The split is all-or-nothing: every participant must exist and hold a
        balance in ``currency_code`` before any balance changes.
        """

        with self._lock:
            staged: Dict[str, Participant] = {}
            try:
                expense = GroupExpense.create(
                    expense_id=self._new_id(),
                    session_id=self._session.session_id,
                    name=name,
                    total_amount=total_amount,
                    currency_code=currency_code,
                    participant_ids=participant_ids,
                    created_at=self._now(),
                )
                transactions = expense.expense_transactions(self._new_id, self._catalog)
                for transaction in transactions:
                    participant = self.get_participant(transaction.participant_id)
                    staged[participant.participant_id] = apply_transaction(participant, transaction)
            except LedgerError as error:
                self._logger.warning("Rejected group expense '%s': %s", name, error)
                raise

            self._participants.update(staged)
            self._transactions.extend(transactions)
            self._group_expenses[expense.expense_id] = expense
            self._logger.info(
                "Split group expense '%s' of %s %s across %s participants (%s each)",
                name,
                expense.total_amount,
                currency_code,
                expense.participant_count,
                expense.amount_per_person,
            )
            self._publish("group_expense_created", expense.participant_ids)
            return expense, transactions
