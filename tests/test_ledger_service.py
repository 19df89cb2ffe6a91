"""Mini README: Tests for roster management and ledger mutations.

These tests cover roster filtering and ordering, transaction application
through the service, the all-or-nothing group expense split, change
notifications and the demo seeding routine.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count
import logging
import threading
from typing import List

import pytest

from juniorbank.currency import CurrencyCatalog
from juniorbank.errors import (
    DuplicateParticipant,
    EmptyParticipantSet,
    InvalidAmount,
    NoSuchBalance,
    UnknownParticipant,
)
from juniorbank.ledger import (
    Balance,
    LedgerEvent,
    LedgerService,
    Participant,
    Session,
    TransactionType,
    build_demo_session,
    seed_demo_roster,
)

NOW = datetime(2025, 7, 14, 9, 30, tzinfo=timezone.utc)


def _service(*participants: Participant) -> LedgerService:
    catalog = CurrencyCatalog(
        {"GEL": 1.0, "EUR": 2.65, "USD": 2.45},
        {"GEL": "₾", "EUR": "€", "USD": "$"},
        base_currency="GEL",
        symbol_currencies=["EUR", "USD"],
    )
    session = Session("s1", 2025, 3, "Session 3", NOW, NOW + timedelta(days=10))
    sequence = count(1)
    return LedgerService(
        session,
        catalog=catalog,
        participants=participants,
        id_factory=lambda: f"id_{next(sequence):04d}",
        clock=lambda: NOW,
    )


def _participant(participant_id: str, first_name: str, last_name: str, *balances: Balance) -> Participant:
    return Participant(
        participant_id=participant_id,
        session_id="s1",
        first_name=first_name,
        last_name=last_name,
        balances=balances,
    )


def test_filter_matches_names_case_insensitively() -> None:
    """Searching ``vol`` should find both Volkovs sorted by last name."""

    service = _service(
        _participant("p3", "Alisa", "Volkova"),
        _participant("p1", "Ivan", "Garkusha"),
        _participant("p2", "Mark", "Volkov"),
    )

    names = [participant.last_name for participant in service.list_participants("vol")]
    assert names == ["Volkov", "Volkova"]
    assert [p.last_name for p in service.list_participants("MARK")] == ["Volkov"]


def test_unfiltered_roster_is_sorted_stably_by_last_name() -> None:
    """Equal last names keep enrollment order; comparison is ordinal."""

    service = _service(
        _participant("p1", "Mark", "Volkov"),
        _participant("p2", "Anna", "abramova"),
        _participant("p3", "Ivan", "Brink"),
        _participant("p4", "Polina", "Brink"),
    )

    roster = service.list_participants()
    assert [participant.participant_id for participant in roster] == ["p3", "p4", "p1", "p2"]


def test_roster_crud_round_trip() -> None:
    """Participants can be added, updated and removed by id."""

    service = _service()
    participant = _participant("p1", "Yakov", "Butenko", Balance("b1", "GEL", 10))
    service.add_participant(participant)

    with pytest.raises(DuplicateParticipant):
        service.add_participant(participant)

    service.update_participant(
        Participant(
            participant_id="p1",
            session_id="s1",
            first_name="Yakov",
            last_name="Butenko",
            notes="Moved to cabin 4",
            balances=participant.balances,
        )
    )
    assert service.get_participant("p1").notes == "Moved to cabin 4"

    service.remove_participant("p1")
    assert service.list_participants() == []
    with pytest.raises(UnknownParticipant):
        service.remove_participant("p1")
    with pytest.raises(KeyError):
        service.get_participant("p1")


def test_queries_delegate_to_participant_rules() -> None:
    """Primary balance and base total follow the participant's rules."""

    service = _service(
        _participant("p1", "Nadezhda", "Baban", Balance("b1", "EUR", 150, 200), Balance("b2", "GEL", 59))
    )
    assert service.primary_balance("p1").currency_code == "GEL"
    assert service.total_balance_in_base("p1") == pytest.approx(456.5)


def test_record_transaction_updates_balance_and_history() -> None:
    """Recorded expenses debit the balance, grow spend and land in history."""

    service = _service(_participant("p1", "Ivan", "Garkusha", Balance("b1", "GEL", 20)))

    transaction = service.record_transaction("p1", TransactionType.EXPENSE, 50, "GEL", "Snacks")

    balance = service.get_participant("p1").balance_for("GEL")
    assert balance.amount == pytest.approx(-30)
    assert balance.total_spent == pytest.approx(50)
    assert transaction.created_at == NOW
    assert service.transactions_for("p1") == [transaction]


def test_rejected_transaction_leaves_no_trace() -> None:
    """A transaction in an unheld currency changes nothing."""

    service = _service(_participant("p1", "Ivan", "Garkusha", Balance("b1", "GEL", 20)))

    with pytest.raises(NoSuchBalance):
        service.record_transaction("p1", "deposit", 10, "EUR")

    assert service.transactions_for("p1") == []
    assert service.get_participant("p1").balance_for("GEL").amount == 20


def test_group_expense_charges_each_participant() -> None:
    """A 90 GEL expense over three campers costs each of them 30."""

    service = _service(
        _participant("p1", "Nadezhda", "Baban", Balance("b1", "GEL", 59)),
        _participant("p2", "Mark", "Volkov", Balance("b2", "GEL", 80)),
        _participant("p3", "Alisa", "Volkova", Balance("b3", "GEL", 250, 300)),
    )

    expense, transactions = service.create_group_expense("Rafting", 90, "GEL", ["p1", "p2", "p3"])

    assert expense.amount_per_person == pytest.approx(30)
    assert expense.session_id == "s1"
    baban = service.get_participant("p1").balance_for("GEL")
    assert baban.amount == pytest.approx(29)
    assert baban.total_spent == pytest.approx(30)
    assert len(transactions) == 3
    assert {transaction.group_expense_id for transaction in transactions} == {expense.expense_id}
    assert service.transactions_for("p2") == [transactions[1]]
    assert service.group_expenses == [expense]


def test_uneven_group_expense_does_not_raise() -> None:
    """Residual rounding from uneven splits is tolerated."""

    service = _service(
        *[_participant(f"p{index}", "Camper", f"Name{index}", Balance(f"b{index}", "GEL", 0)) for index in range(3)]
    )

    expense, _ = service.create_group_expense("Museum", 100, "GEL", ["p0", "p1", "p2"])

    assert expense.amount_per_person * expense.participant_count == pytest.approx(100)


def test_group_expense_is_all_or_nothing() -> None:
    """If one participant lacks the currency, nobody is charged."""

    service = _service(
        _participant("p1", "Nadezhda", "Baban", Balance("b1", "GEL", 59)),
        _participant("p2", "Elizabet", "Geld", Balance("b2", "EUR", 430, 500)),
    )

    with pytest.raises(NoSuchBalance):
        service.create_group_expense("Boat trip", 40, "GEL", ["p1", "p2"])

    assert service.get_participant("p1").balance_for("GEL").amount == 59
    assert service.transactions_for("p1") == []
    assert service.group_expenses == []


def test_empty_group_expense_creates_nothing() -> None:
    """An empty participant set is rejected before any entity exists."""

    service = _service(_participant("p1", "Nadezhda", "Baban", Balance("b1", "GEL", 59)))

    with pytest.raises(EmptyParticipantSet):
        service.create_group_expense("Nothing", 90, "GEL", [])

    assert service.group_expenses == []
    assert service.transactions_for("p1") == []


def test_subscribers_receive_events_until_unsubscribed() -> None:
    """Listeners hear about committed mutations and can detach."""

    service = _service(_participant("p1", "Ivan", "Garkusha", Balance("b1", "GEL", -3)))
    events: List[LedgerEvent] = []
    unsubscribe = service.subscribe(events.append)

    service.record_transaction("p1", TransactionType.DEPOSIT, 50, "GEL")
    service.upsert_balance("p1", Balance("b2", "USD", 10))
    unsubscribe()
    service.remove_participant("p1")

    assert [event.kind for event in events] == ["transaction_applied", "balance_updated"]
    assert events[0].participant_ids == ("p1",)


def test_seed_demo_roster_is_explicit() -> None:
    """A new service is empty until the demo roster is seeded."""

    service = _service()
    assert service.list_participants() == []

    seeded = seed_demo_roster(service)

    assert len(seeded) == 10
    baban = next(p for p in service.list_participants("baban"))
    assert baban.parent_email == "nadezhda.baban@parent.com"
    assert service.total_balance_in_base(baban.participant_id) == pytest.approx(456.5)
    assert [p.last_name for p in service.list_participants("vol")] == ["Volkov", "Volkova"]


def test_build_demo_session_spans_ten_days() -> None:
    """The demo session lasts ten days from its start."""

    session = build_demo_session("demo", start_at=NOW)
    assert session.end_at - session.start_at == timedelta(days=10)
    assert session.display_label == "3 session, 2025"


def test_non_finite_group_expense_leaves_balances_untouched() -> None:
    """A NaN total is rejected before any participant is charged."""

    service = _service(_participant("p1", "Nadezhda", "Baban", Balance("b1", "GEL", 59)))

    with pytest.raises(InvalidAmount):
        service.create_group_expense("Broken", float("nan"), "GEL", ["p1"])

    assert service.get_participant("p1").balance_for("GEL").amount == 59
    assert service.group_expenses == []


def test_failing_listener_does_not_mask_committed_change(caplog: pytest.LogCaptureFixture) -> None:
    """A listener error is logged; the caller and later listeners are unaffected."""

    service = _service(_participant("p1", "Nadezhda", "Baban", Balance("b1", "GEL", 59)))
    events: List[LedgerEvent] = []

    def explode(event: LedgerEvent) -> None:
        raise RuntimeError("refresh failed")

    service.subscribe(explode)
    service.subscribe(events.append)

    with caplog.at_level(logging.ERROR):
        transaction = service.record_transaction("p1", "deposit", 10, "GEL")

    assert service.get_participant("p1").balance_for("GEL").amount == pytest.approx(69)
    assert service.transactions_for("p1") == [transaction]
    assert [event.kind for event in events] == ["transaction_applied"]
    assert "listener failed" in caplog.text


def test_roster_reads_are_safe_during_concurrent_enrollment() -> None:
    """Listing the roster while another thread enrolls campers never fails."""

    service = _service()
    errors: List[BaseException] = []
    done = threading.Event()

    def read_roster() -> None:
        try:
            while not done.is_set():
                service.list_participants("")
                service.transactions_for("p0")
        except BaseException as error:
            errors.append(error)

    reader = threading.Thread(target=read_roster)
    reader.start()
    try:
        for index in range(2000):
            service.add_participant(
                _participant(f"p{index}", "Camper", f"Name{index:04d}", Balance(f"b{index}", "GEL", 1))
            )
    finally:
        done.set()
        reader.join()

    assert errors == []
    assert len(service.list_participants()) == 2000
