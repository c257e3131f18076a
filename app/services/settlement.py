import logging
from dataclasses import dataclass

from app.core.errors import (
    ExceedsExercisable,
    ExercisePaused,
    ExerciseWindowClosed,
    GrantExpired,
    InvalidAmount,
    NothingToExercise,
)
from app.models import ControllerState
from app.services.assets import EquityMinter, PaymentMover
from app.services.grant_store import GrantStore
from app.services.lifecycle import exercisable_for_grant, exercise_deadline, is_expired
from app.services.vesting import equity_units, exercise_cost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExerciseResult:
    grant_id: int
    holder: str
    amount: int
    cost: int
    minted_units: int
    exercised_options: int


class ExerciseSettlement:
    def __init__(self, store: GrantStore, minter: EquityMinter, payment: PaymentMover, spender: str) -> None:
        self.store = store
        self.minter = minter
        self.payment = payment
        self.spender = spender

    def exercise(
        self,
        grant_id: int,
        amount: int,
        requester: str,
        now: int,
        controls: ControllerState,
    ) -> ExerciseResult:
        grant = self.store.get_for_custodian(grant_id, requester)
        if amount <= 0:
            raise InvalidAmount("Exercise amount must be positive", grant_id=grant_id, amount=amount)
        if controls.exercise_paused:
            raise ExercisePaused("Exercise is paused", grant_id=grant_id)
        if is_expired(grant, now):
            raise GrantExpired(
                f"Grant {grant_id} expired",
                grant_id=grant_id,
                exercise_deadline=exercise_deadline(grant),
                now=now,
            )

        available = exercisable_for_grant(grant, now)
        if available == 0:
            raise NothingToExercise(f"Grant {grant_id} has nothing to exercise", grant_id=grant_id)
        if amount > available:
            raise ExceedsExercisable(grant_id, amount, available)

        deadline = exercise_deadline(grant)
        if deadline is not None and now > deadline:
            raise ExerciseWindowClosed(
                f"Post-termination window for grant {grant_id} has closed",
                grant_id=grant_id,
                exercise_deadline=deadline,
                now=now,
            )

        cost = exercise_cost(amount, grant.strike_price)
        minted_units = equity_units(amount, self.minter.decimals)

        # Record the exercise before any collaborator runs.
        grant.exercised_options = grant.exercised_options + amount
        self.store.db.flush()

        self.payment.transfer_from(self.spender, requester, controls.treasury_address, cost)
        self.minter.mint(requester, minted_units)

        logger.info(
            "Grant %s exercised %s options for %s (cost=%s minted=%s)",
            grant_id,
            amount,
            requester,
            cost,
            minted_units,
        )
        return ExerciseResult(
            grant_id=grant_id,
            holder=requester,
            amount=amount,
            cost=cost,
            minted_units=minted_units,
            exercised_options=grant.exercised_options,
        )
