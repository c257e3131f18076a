"""Derived grant state and the guards for its transitions.

Nothing here is stored: every answer is computed from the grant record and the
caller-supplied ``now``. Exercise and burn checks share ``vested_for_grant`` so
they can never disagree about how many options vested before termination.
"""

from enum import Enum

from app.core.errors import GrantAlreadyTerminated, GrantNotBurnable
from app.models import Grant
from app.schemas import GrantVestingSummary
from app.services.vesting import exercisable_amount, exercise_cost, vested_amount


class GrantState(str, Enum):
    CREATED = "created"
    VESTING = "vesting"
    PARTIALLY_EXERCISED = "partially_exercised"
    FULLY_EXERCISED = "fully_exercised"
    TERMINATED = "terminated"
    EXPIRED = "expired"


def effective_timestamp(grant: Grant, now: int) -> int:
    if grant.terminated:
        return grant.termination_timestamp
    return now


def vested_for_grant(grant: Grant, now: int) -> int:
    return vested_amount(
        grant.total_options,
        grant.vesting_start,
        grant.cliff_duration,
        grant.vesting_duration,
        effective_timestamp(grant, now),
    )


def exercisable_for_grant(grant: Grant, now: int) -> int:
    return exercisable_amount(vested_for_grant(grant, now), grant.exercised_options)


def exercise_deadline(grant: Grant) -> int | None:
    if not grant.terminated:
        return None
    return grant.termination_timestamp + grant.post_termination_window


def is_expired(grant: Grant, now: int) -> bool:
    deadline = exercise_deadline(grant)
    return deadline is not None and now > deadline


def is_fully_exercised(grant: Grant) -> bool:
    return grant.exercised_options == grant.total_options


def is_burnable(grant: Grant, now: int) -> bool:
    if is_fully_exercised(grant):
        return True
    if is_expired(grant, now):
        return True
    # vested_for_grant is frozen at termination_timestamp once terminated.
    return grant.terminated and grant.exercised_options >= vested_for_grant(grant, now)


def grant_state(grant: Grant, now: int) -> GrantState:
    if is_expired(grant, now):
        return GrantState.EXPIRED
    if grant.terminated:
        return GrantState.TERMINATED
    if is_fully_exercised(grant):
        return GrantState.FULLY_EXERCISED
    if grant.exercised_options > 0:
        return GrantState.PARTIALLY_EXERCISED
    if now < grant.vesting_start + grant.cliff_duration:
        return GrantState.CREATED
    return GrantState.VESTING


def ensure_can_terminate(grant: Grant) -> None:
    if grant.terminated:
        raise GrantAlreadyTerminated(
            f"Grant {grant.id} was already terminated",
            grant_id=grant.id,
            termination_timestamp=grant.termination_timestamp,
        )


def ensure_burnable(grant: Grant, now: int) -> None:
    if not is_burnable(grant, now):
        raise GrantNotBurnable(
            f"Grant {grant.id} still has options that can be exercised",
            grant_id=grant.id,
            exercised_options=grant.exercised_options,
            vested_options=vested_for_grant(grant, now),
            total_options=grant.total_options,
        )


def summarize_grant(grant: Grant, as_of: int) -> GrantVestingSummary:
    vested = vested_for_grant(grant, as_of)
    exercisable = exercisable_amount(vested, grant.exercised_options)

    return GrantVestingSummary(
        grant_id=grant.id,
        custodian=grant.custodian,
        as_of=as_of,
        state=grant_state(grant, as_of).value,
        total_options=grant.total_options,
        vested_options=vested,
        unvested_options=max(grant.total_options - vested, 0),
        exercised_options=grant.exercised_options,
        exercisable_options=exercisable,
        exercisable_cost=exercise_cost(exercisable, grant.strike_price),
        terminated=grant.terminated,
        exercise_deadline=exercise_deadline(grant),
        is_expired=is_expired(grant, as_of),
        is_fully_exercised=is_fully_exercised(grant),
        is_burnable=is_burnable(grant, as_of),
    )
