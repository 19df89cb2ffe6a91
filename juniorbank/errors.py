"""Mini README: Typed failures raised by the camp ledger.

Every failure is a local validation problem reported to the caller; none
of them is transient, so callers correct the input and try again.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for ledger validation failures."""


class UnknownCurrency(LedgerError):
    """A rate lookup targeted a currency missing from the catalog."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Unknown currency: {code}")
        self.code = code


class NoSuchBalance(LedgerError):
    """A transaction targeted a currency the participant does not hold."""

    def __init__(self, participant_id: str, code: str) -> None:
        super().__init__(f"Participant {participant_id} holds no {code} balance")
        self.participant_id = participant_id
        self.code = code


class EmptyParticipantSet(LedgerError):
    """A group expense was requested without participants."""


class InvalidAmount(LedgerError):
    """A monetary amount was zero or negative where a positive one is required."""


class DuplicateCurrencyBalance(LedgerError):
    """A second balance was inserted for a currency already held."""

    def __init__(self, participant_id: str, code: str) -> None:
        super().__init__(f"Participant {participant_id} already holds a {code} balance")
        self.participant_id = participant_id
        self.code = code


class DuplicateParticipant(LedgerError):
    """A participant id is already present on the roster."""


class UnknownParticipant(LedgerError, KeyError):
    """A roster lookup used an id that is not enrolled."""

    def __init__(self, participant_id: str) -> None:
        super().__init__(f"Participant {participant_id} not found")
        self.participant_id = participant_id

    def __str__(self) -> str:
        return str(self.args[0])
