"""Mini README: Entities of the multi-currency camp ledger.

Structure:
    * Session - enrollment period participants belong to.
    * Balance - one currency account held by a participant.
    * Participant - identity, contact details and per-currency balances.
    * TransactionType - enum of deposit, expense and refund entries.
    * Transaction - immutable ledger fact with a frozen conversion snapshot.
    * GroupExpense - shared cost split evenly across participants.
    * apply_transaction - pure helper folding a transaction into a participant.

All entities are frozen dataclasses compared structurally. Updates produce
new instances through ``dataclasses.replace`` so a balance either changes
completely or not at all. Conversion and display consult a
``CurrencyCatalog``; when none is passed the process-wide catalog is used.
The ``as_dict``/``from_dict`` pairs produce JSON-friendly dictionaries for
callers that store entities elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
import math
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..currency import CurrencyCatalog, get_catalog
from ..errors import (
    DuplicateCurrencyBalance,
    EmptyParticipantSet,
    InvalidAmount,
    NoSuchBalance,
)


def _parse_instant(value: object) -> datetime:
    """Parse ISO formatted strings or datetime objects."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError("Instants must be provided as ISO strings or datetime instances.")


def _is_positive_amount(value: float) -> bool:
    """True for finite amounts above zero; NaN and infinities are rejected."""

    return math.isfinite(value) and value > 0


def _optional_float(value: object) -> Optional[float]:
    return None if value is None else float(value)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class Session:
    """Enrollment period scoping a roster of participants."""

    session_id: str
    year: int
    session_number: int
    name: str
    start_at: datetime
    end_at: datetime
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.end_at < self.start_at:
            raise ValueError(
                f"Session {self.session_id} ends ({self.end_at.isoformat()}) "
                f"before it starts ({self.start_at.isoformat()})."
            )

    @property
    def display_label(self) -> str:
        """Short heading such as ``3 session, 2025``."""

        return f"{self.session_number} session, {self.year}"

    def renamed(self, name: str) -> "Session":
        return replace(self, name=name)

    def retired(self) -> "Session":
        """Return the session marked inactive; sessions are never deleted."""

        return replace(self, is_active=False)

    def as_dict(self) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "year": self.year,
            "session_number": self.session_number,
            "name": self.name,
            "start_at": self.start_at.isoformat(),
            "end_at": self.end_at.isoformat(),
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Session":
        return cls(
            session_id=str(payload["session_id"]),
            year=int(payload["year"]),
            session_number=int(payload["session_number"]),
            name=str(payload["name"]),
            start_at=_parse_instant(payload["start_at"]),
            end_at=_parse_instant(payload["end_at"]),
            is_active=bool(payload.get("is_active", True)),
        )


class TransactionType(str, Enum):
    """Enumerate the supported ledger entry kinds."""

    DEPOSIT = "deposit"
    EXPENSE = "expense"
    REFUND = "refund"

    @classmethod
    def from_str(cls, value: str) -> "TransactionType":
        """Coerce arbitrary casing into a valid transaction type."""

        try:
            normalised = value.strip().lower()
            return cls(normalised)
        except (ValueError, AttributeError) as error:
            raise ValueError(f"Unsupported transaction type: {value}") from error

    @property
    def is_credit(self) -> bool:
        return self is not TransactionType.EXPENSE


@dataclass(frozen=True, slots=True)
class Transaction:
    """Append-only record of a single monetary event against a participant.

    ``amount`` is always positive; ``transaction_type`` decides whether it
    credits or debits the balance. ``exchange_rate`` and ``base_equivalent``
    are captured when the entry is recorded and never recomputed.
    """

    transaction_id: str
    participant_id: str
    transaction_type: TransactionType
    amount: float
    currency_code: str
    description: str
    created_at: datetime
    group_expense_id: Optional[str] = None
    exchange_rate: Optional[float] = None
    base_equivalent: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.transaction_type, TransactionType):
            object.__setattr__(
                self, "transaction_type", TransactionType.from_str(str(self.transaction_type))
            )
        if not _is_positive_amount(self.amount):
            raise InvalidAmount(
                f"Transaction amounts must be positive, got {self.amount} "
                f"for {self.transaction_type.value}"
            )

    @classmethod
    def record(
        cls,
        *,
        transaction_id: str,
        participant_id: str,
        transaction_type: TransactionType,
        amount: float,
        currency_code: str,
        description: str,
        created_at: datetime,
        catalog: Optional[CurrencyCatalog] = None,
        group_expense_id: Optional[str] = None,
    ) -> "Transaction":
        """Create a transaction snapshotting the current rate into the base currency."""

        catalog = catalog or get_catalog()
        rate = catalog.rate_to_base(currency_code)
        return cls(
            transaction_id=transaction_id,
            participant_id=participant_id,
            transaction_type=transaction_type,
            amount=float(amount),
            currency_code=currency_code,
            description=description,
            created_at=created_at,
            group_expense_id=group_expense_id,
            exchange_rate=rate,
            base_equivalent=float(amount) * rate,
        )

    @property
    def signed_amount(self) -> float:
        """Effect of the entry on a balance: negative for expenses."""

        return self.amount if self.transaction_type.is_credit else -self.amount

    @property
    def date_label(self) -> str:
        return self.created_at.strftime("%d.%m")

    def formatted_amount(self, catalog: Optional[CurrencyCatalog] = None) -> str:
        """Render e.g. ``-30 ₾`` for an expense or ``50 €`` for a deposit."""

        catalog = catalog or get_catalog()
        sign = "-" if self.transaction_type is TransactionType.EXPENSE else ""
        return f"{sign}{abs(self.amount):.0f} {catalog.symbol_for(self.currency_code)}"

    def as_dict(self) -> Dict[str, object]:
        return {
            "transaction_id": self.transaction_id,
            "participant_id": self.participant_id,
            "transaction_type": self.transaction_type.value,
            "amount": self.amount,
            "currency_code": self.currency_code,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "group_expense_id": self.group_expense_id,
            "exchange_rate": self.exchange_rate,
            "base_equivalent": self.base_equivalent,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Transaction":
        group_expense_id = payload.get("group_expense_id")
        return cls(
            transaction_id=str(payload["transaction_id"]),
            participant_id=str(payload["participant_id"]),
            transaction_type=TransactionType.from_str(str(payload["transaction_type"])),
            amount=float(payload["amount"]),
            currency_code=str(payload["currency_code"]),
            description=str(payload.get("description", "")),
            created_at=_parse_instant(payload["created_at"]),
            group_expense_id=None if group_expense_id is None else str(group_expense_id),
            exchange_rate=_optional_float(payload.get("exchange_rate")),
            base_equivalent=_optional_float(payload.get("base_equivalent")),
        )


@dataclass(frozen=True, slots=True)
class Balance:
    """Amount held by a participant in a single currency.

    A negative ``amount`` means the participant owes the camp.
    """

    balance_id: str
    currency_code: str
    amount: float
    initial_deposit: float = 0.0
    total_spent: float = 0.0

    def __post_init__(self) -> None:
        if self.initial_deposit < 0:
            raise ValueError(f"Initial deposit cannot be negative, got {self.initial_deposit}")
        if self.total_spent < 0:
            raise ValueError(f"Total spent cannot be negative, got {self.total_spent}")

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def convert_to_base(self, catalog: Optional[CurrencyCatalog] = None) -> float:
        """Amount expressed in the base currency at the current configured rate."""

        catalog = catalog or get_catalog()
        return catalog.convert_to_base(self.amount, self.currency_code)

    def display(self, catalog: Optional[CurrencyCatalog] = None) -> str:
        catalog = catalog or get_catalog()
        return catalog.format_amount(self.amount, self.currency_code)

    def applied(self, transaction: Transaction) -> "Balance":
        """Return the balance after folding in ``transaction``."""

        if transaction.currency_code != self.currency_code:
            raise ValueError(
                f"Cannot apply {transaction.currency_code} transaction "
                f"{transaction.transaction_id} to a {self.currency_code} balance"
            )
        if transaction.transaction_type is TransactionType.EXPENSE:
            return replace(
                self,
                amount=self.amount - transaction.amount,
                total_spent=self.total_spent + transaction.amount,
            )
        return replace(self, amount=self.amount + transaction.amount)

    def as_dict(self) -> Dict[str, object]:
        return {
            "balance_id": self.balance_id,
            "currency_code": self.currency_code,
            "amount": self.amount,
            "initial_deposit": self.initial_deposit,
            "total_spent": self.total_spent,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Balance":
        return cls(
            balance_id=str(payload["balance_id"]),
            currency_code=str(payload["currency_code"]),
            amount=float(payload["amount"]),
            initial_deposit=float(payload.get("initial_deposit", 0.0)),
            total_spent=float(payload.get("total_spent", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class Participant:
    """Enrolled camper with contact details and per-currency balances.

    At most one balance exists per currency code; ``upsert_balance`` and
    ``add_balance`` return updated copies that keep that guarantee.
    """

    participant_id: str
    session_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    photo_path: Optional[str] = None
    parent_email: Optional[str] = None
    notes: Optional[str] = None
    balances: Tuple[Balance, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.first_name or not self.first_name.strip():
            raise ValueError(f"Participant {self.participant_id} requires a first name.")
        if not self.last_name or not self.last_name.strip():
            raise ValueError(f"Participant {self.participant_id} requires a last name.")
        balances = tuple(self.balances)
        seen = set()
        for balance in balances:
            if balance.currency_code in seen:
                raise DuplicateCurrencyBalance(self.participant_id, balance.currency_code)
            seen.add(balance.currency_code)
        object.__setattr__(self, "balances", balances)

    @property
    def full_name(self) -> str:
        """Canonical sort label, e.g. ``BABAN Nadezhda``."""

        return f"{self.last_name.upper()} {self.first_name}"

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def balance_for(self, currency_code: str) -> Optional[Balance]:
        for balance in self.balances:
            if balance.currency_code == currency_code:
                return balance
        return None

    def primary_balance(self, catalog: Optional[CurrencyCatalog] = None) -> Optional[Balance]:
        """Return the base-currency balance, else the one with the largest amount.

        Ties on amount resolve to the balance inserted first.
        """

        if not self.balances:
            return None
        catalog = catalog or get_catalog()
        for balance in self.balances:
            if catalog.is_base_currency(balance.currency_code):
                return balance
        return max(self.balances, key=lambda balance: balance.amount)

    def total_balance_in_base(self, catalog: Optional[CurrencyCatalog] = None) -> float:
        """Sum of all balances converted into the base currency, for ranking only."""

        catalog = catalog or get_catalog()
        return sum(balance.convert_to_base(catalog) for balance in self.balances)

    def upsert_balance(self, balance: Balance) -> "Participant":
        """Replace the balance for ``balance.currency_code`` wholesale or append it."""

        balances: List[Balance] = list(self.balances)
        for index, existing in enumerate(balances):
            if existing.currency_code == balance.currency_code:
                balances[index] = balance
                break
        else:
            balances.append(balance)
        return replace(self, balances=tuple(balances))

    def add_balance(self, balance: Balance) -> "Participant":
        """Append a balance, rejecting a second one for an already held currency."""

        if self.balance_for(balance.currency_code) is not None:
            raise DuplicateCurrencyBalance(self.participant_id, balance.currency_code)
        return replace(self, balances=self.balances + (balance,))

    def matches(self, filter_text: str) -> bool:
        """Case-insensitive containment check against the participant's names."""

        if not filter_text:
            return True
        needle = filter_text.lower()
        return any(
            needle in candidate.lower()
            for candidate in (self.full_name, self.first_name, self.last_name)
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "participant_id": self.participant_id,
            "session_id": self.session_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "photo_path": self.photo_path,
            "parent_email": self.parent_email,
            "notes": self.notes,
            "balances": [balance.as_dict() for balance in self.balances],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Participant":
        return cls(
            participant_id=str(payload["participant_id"]),
            session_id=str(payload["session_id"]),
            first_name=str(payload["first_name"]),
            last_name=str(payload["last_name"]),
            email=payload.get("email"),
            phone=payload.get("phone"),
            photo_path=payload.get("photo_path"),
            parent_email=payload.get("parent_email"),
            notes=payload.get("notes"),
            balances=tuple(Balance.from_dict(entry) for entry in payload.get("balances", [])),
        )


@dataclass(frozen=True, slots=True)
class GroupExpense:
    """Shared cost split evenly across a set of participants.

    ``amount_per_person`` is computed once by ``create`` and stored. No
    remainder is redistributed, so ``amount_per_person * participant_count``
    may differ from ``total_amount`` by floating point residue.
    """

    expense_id: str
    session_id: str
    name: str
    total_amount: float
    currency_code: str
    participant_ids: Tuple[str, ...]
    amount_per_person: float
    created_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "participant_ids", tuple(self.participant_ids))
        if not self.participant_ids:
            raise EmptyParticipantSet(f"Group expense '{self.name}' has no participants.")
        if not _is_positive_amount(self.total_amount):
            raise InvalidAmount(
                f"Group expense '{self.name}' requires a positive total, got {self.total_amount}"
            )

    @classmethod
    def create(
        cls,
        *,
        expense_id: str,
        session_id: str,
        name: str,
        total_amount: float,
        currency_code: str,
        participant_ids: Iterable[str],
        created_at: datetime,
    ) -> "GroupExpense":
        """Validate the request and compute the per-person share.

        Repeated participant ids count once; first-seen order is kept.
        """

        unique_ids = tuple(dict.fromkeys(participant_ids))
        if not unique_ids:
            raise EmptyParticipantSet(f"Group expense '{name}' has no participants.")
        if not _is_positive_amount(total_amount):
            raise InvalidAmount(f"Group expense '{name}' requires a positive total, got {total_amount}")
        return cls(
            expense_id=expense_id,
            session_id=session_id,
            name=name,
            total_amount=float(total_amount),
            currency_code=currency_code,
            participant_ids=unique_ids,
            amount_per_person=float(total_amount) / len(unique_ids),
            created_at=created_at,
        )

    @property
    def participant_count(self) -> int:
        return len(self.participant_ids)

    def expense_transactions(
        self,
        id_factory: Callable[[], str],
        catalog: Optional[CurrencyCatalog] = None,
    ) -> List[Transaction]:
        """Emit one linked expense entry per participant, in participant order."""

        return [
            Transaction.record(
                transaction_id=id_factory(),
                participant_id=participant_id,
                transaction_type=TransactionType.EXPENSE,
                amount=self.amount_per_person,
                currency_code=self.currency_code,
                description=f"Group expense: {self.name}",
                created_at=self.created_at,
                catalog=catalog,
                group_expense_id=self.expense_id,
            )
            for participant_id in self.participant_ids
        ]

    def as_dict(self) -> Dict[str, object]:
        return {
            "expense_id": self.expense_id,
            "session_id": self.session_id,
            "name": self.name,
            "total_amount": self.total_amount,
            "currency_code": self.currency_code,
            "participant_ids": list(self.participant_ids),
            "amount_per_person": self.amount_per_person,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GroupExpense":
        return cls(
            expense_id=str(payload["expense_id"]),
            session_id=str(payload["session_id"]),
            name=str(payload["name"]),
            total_amount=float(payload["total_amount"]),
            currency_code=str(payload["currency_code"]),
            participant_ids=tuple(str(entry) for entry in payload["participant_ids"]),
            amount_per_person=float(payload["amount_per_person"]),
            created_at=_parse_instant(payload["created_at"]),
        )


def apply_transaction(participant: Participant, transaction: Transaction) -> Participant:
    """Return ``participant`` with ``transaction`` folded into the matching balance.

    Expenses may drive the amount negative; that records a debt and is not
    an error.
    """

    if transaction.participant_id != participant.participant_id:
        raise ValueError(
            f"Transaction {transaction.transaction_id} belongs to participant "
            f"{transaction.participant_id}, not {participant.participant_id}"
        )
    balance = participant.balance_for(transaction.currency_code)
    if balance is None:
        raise NoSuchBalance(participant.participant_id, transaction.currency_code)
    return participant.upsert_balance(balance.applied(transaction))
