"""Mini README: Deterministic demo roster for previews and the CLI.

Structure:
    * build_demo_session - the summer session the demo roster belongs to.
    * seed_demo_roster - enrolls the ten demo campers into a given service.

Seeding is always an explicit call; a fresh ``LedgerService`` starts empty.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from .models import Balance, Participant, Session
from .service import LedgerService

# (first name, last name, [(currency, amount, initial deposit), ...])
DEMO_ROSTER: Sequence[Tuple[str, str, Sequence[Tuple[str, float, float]]]] = (
    ("Aleksandr", "Abramov", [("GEL", -28, 0)]),
    ("Nadezhda", "Baban", [("EUR", 150, 200), ("GEL", 59, 0)]),
    ("Fedor", "Barshak", [("USD", 80, 100), ("GEL", -28, 0)]),
    ("Mark", "Volkov", [("EUR", 175, 200), ("USD", 20, 50), ("GEL", 80, 100)]),
    ("Alisa", "Volkova", [("EUR", 183, 200), ("GEL", 250, 300)]),
    ("Ivan", "Garkusha", [("GEL", -3, 0)]),
    ("Elizabet", "Geld", [("EUR", 430, 500)]),
    ("Anna", "Belousova", [("USD", 106, 150)]),
    ("Polina", "Brink", [("EUR", 130, 200), ("USD", 50, 50)]),
    ("Yakov", "Butenko", [("EUR", 84, 150), ("GEL", 10, 0)]),
)


def build_demo_session(session_id: str, start_at: Optional[datetime] = None) -> Session:
    """Return the ten-day demo session starting at ``start_at`` (now by default)."""

    start_at = start_at or datetime.now(timezone.utc)
    return Session(
        session_id=session_id,
        year=2025,
        session_number=3,
        name="Session 3",
        start_at=start_at,
        end_at=start_at + timedelta(days=10),
    )


def seed_demo_roster(service: LedgerService) -> List[Participant]:
    """Enroll the demo campers into ``service`` and return them in seeding order."""

    seeded: List[Participant] = []
    for first_name, last_name, balances in DEMO_ROSTER:
        participant = Participant(
            participant_id=service.new_id(),
            session_id=service.session.session_id,
            first_name=first_name,
            last_name=last_name,
            parent_email=f"{first_name.lower()}.{last_name.lower()}@parent.com",
            balances=tuple(
                Balance(
                    balance_id=service.new_id(),
                    currency_code=currency_code,
                    amount=float(amount),
                    initial_deposit=float(initial_deposit),
                )
                for currency_code, amount, initial_deposit in balances
            ),
        )
        service.add_participant(participant)
        seeded.append(participant)
    return seeded
