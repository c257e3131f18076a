"""Ledger error taxonomy.

Every failure carries a machine-readable ``code`` and a ``context`` mapping with
the identifiers and quantities needed to diagnose it (grant id, requested vs.
available amounts, addresses involved in a blocked transfer).
"""

from typing import Any


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, "context": self.context}


# Input validation


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class ZeroAddress(LedgerError):
    code = "zero_address"


class InvalidGrantParameters(LedgerError):
    code = "invalid_grant_parameters"


# Authorization


class MissingRole(LedgerError):
    status_code = 403
    code = "missing_role"


class GrantNotFound(LedgerError):
    status_code = 404
    code = "grant_not_found"

    def __init__(self, grant_id: int) -> None:
        super().__init__(f"Grant {grant_id} not found", grant_id=grant_id)


class AccountNotFound(LedgerError):
    status_code = 404
    code = "account_not_found"


class AccountAlreadyExists(LedgerError):
    status_code = 409
    code = "account_exists"


# Grant state


class StateError(LedgerError):
    status_code = 409
    code = "invalid_state"


class GrantAlreadyTerminated(StateError):
    code = "grant_already_terminated"


class GrantExpired(StateError):
    code = "grant_expired"


class ExerciseWindowClosed(StateError):
    code = "exercise_window_closed"


class NothingToExercise(StateError):
    code = "nothing_to_exercise"


class ExceedsExercisable(StateError):
    code = "exceeds_exercisable"

    def __init__(self, grant_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Requested {requested} options but only {available} are exercisable",
            grant_id=grant_id,
            requested=requested,
            available=available,
        )


class GrantNotBurnable(StateError):
    code = "grant_not_burnable"


class NoPendingApproval(StateError):
    code = "no_pending_approval"


class TransferNotApproved(StateError):
    code = "transfer_not_approved"


class TransferBlocked(StateError):
    code = "transfer_blocked"

    def __init__(self, grant_id: int, custodian: str, destination: str) -> None:
        super().__init__(
            f"Grant {grant_id} is non-transferable without an approved recovery",
            grant_id=grant_id,
            custodian=custodian,
            destination=destination,
        )


class ExercisePaused(StateError):
    code = "exercise_paused"


class ReentrancyError(StateError):
    code = "reentrant_call"


# Asset collaborators


class CollaboratorError(LedgerError):
    status_code = 409
    code = "collaborator_error"


class InsufficientAllowance(CollaboratorError):
    code = "insufficient_allowance"


class InsufficientBalance(CollaboratorError):
    code = "insufficient_balance"


class SupplyCapExceeded(CollaboratorError):
    code = "supply_cap_exceeded"
