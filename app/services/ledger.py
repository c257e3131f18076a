"""Command facade over the grant ledger.

Every mutating command runs inside ``_command``: the process-wide non-reentrant
lock is taken, the clock is read once, and the database transaction is committed
only if every step (including both asset collaborators) succeeded. Any failure
rolls the whole command back. Exactly one audit event is written per committed
command.
"""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import GrantNotFound, InvalidAmount, TransferBlocked
from app.models import ControllerState, EventKind, Grant, LedgerEvent, Role, TransferApproval
from app.schemas import GrantVestingSummary
from app.services.addresses import require_address
from app.services.assets import CappedEquityAsset, EquityMinter, PaymentAsset, PaymentMover
from app.services.grant_store import GrantStore
from app.services.guard import NonReentrantLock, ledger_lock
from app.services.lifecycle import (
    ensure_burnable,
    ensure_can_terminate,
    exercise_deadline,
    summarize_grant,
    vested_for_grant,
)
from app.services.roles import RoleAuthority
from app.services.settlement import ExerciseResult, ExerciseSettlement
from app.services.transfer_gate import TransferGate
from app.services.vesting import exercise_cost

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
CONTROLLER_STATE_ID = 1


def system_clock() -> int:
    return int(time.time())


class OptionLedger:
    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        clock: Clock = system_clock,
        minter: EquityMinter | None = None,
        payment: PaymentMover | None = None,
        lock: NonReentrantLock = ledger_lock,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock
        self.lock = lock

        self.store = GrantStore(db)
        self.roles = RoleAuthority(db)
        self.gate = TransferGate(self.store, self.roles)
        self.equity = CappedEquityAsset(
            db,
            self.settings.equity_symbol,
            self.settings.equity_decimals,
            cap=self.settings.equity_supply_cap_units,
        )
        self.payment_asset = PaymentAsset(db, self.settings.payment_symbol, self.settings.payment_decimals)
        self.settlement = ExerciseSettlement(
            self.store,
            minter or self.equity,
            payment or self.payment_asset,
            spender=self.settings.ledger_address,
        )

    @contextmanager
    def _command(self, name: str) -> Iterator[int]:
        with self.lock:
            now = self.clock()
            try:
                yield now
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.warning("Ledger command %s rolled back", name)
                raise

    def _record(self, kind: EventKind, actor: str, now: int, grant_id: int | None = None, **payload: Any) -> None:
        self.db.add(LedgerEvent(kind=kind, grant_id=grant_id, actor=actor, ledger_time=now, payload=payload))
        self.db.flush()

    def _default_controls(self) -> ControllerState:
        return ControllerState(
            id=CONTROLLER_STATE_ID,
            treasury_address=require_address(self.settings.treasury_address, "treasury"),
            exercise_paused=False,
        )

    def controls(self) -> ControllerState:
        # Only called inside _command; the first command persists the defaults.
        state = self.db.get(ControllerState, CONTROLLER_STATE_ID)
        if state is None:
            state = self._default_controls()
            self.db.add(state)
            self.db.flush()
        return state

    def read_controls(self) -> ControllerState:
        state = self.db.get(ControllerState, CONTROLLER_STATE_ID)
        return state if state is not None else self._default_controls()

    # Grant lifecycle

    def issue_grant(
        self,
        caller: str,
        holder: str,
        *,
        total_options: int,
        strike_price: int,
        vesting_start: int,
        cliff_duration: int,
        vesting_duration: int,
        post_termination_window: int,
    ) -> Grant:
        with self._command("issue_grant") as now:
            self.roles.require(caller, Role.ISSUER)
            grant = self.store.create(
                holder,
                total_options=total_options,
                strike_price=strike_price,
                vesting_start=vesting_start,
                cliff_duration=cliff_duration,
                vesting_duration=vesting_duration,
                post_termination_window=post_termination_window,
            )
            self._record(
                EventKind.GRANT_CREATED,
                caller,
                now,
                grant.id,
                holder=grant.custodian,
                total_options=total_options,
                strike_price=strike_price,
                vesting_start=vesting_start,
                cliff_duration=cliff_duration,
                vesting_duration=vesting_duration,
                post_termination_window=post_termination_window,
            )
        logger.info("Issued grant %s to %s", grant.id, grant.custodian)
        return grant

    def exercise(self, caller: str, grant_id: int, amount: int) -> ExerciseResult:
        with self._command("exercise") as now:
            result = self.settlement.exercise(grant_id, amount, caller, now, self.controls())
            self._record(
                EventKind.OPTIONS_EXERCISED,
                caller,
                now,
                grant_id,
                holder=result.holder,
                amount=result.amount,
                cost=result.cost,
                minted_units=result.minted_units,
            )
        return result

    def terminate(self, caller: str, grant_id: int) -> Grant:
        with self._command("terminate") as now:
            self.roles.require(caller, Role.ADMIN)
            grant = self.store.get(grant_id)
            ensure_can_terminate(grant)
            grant.terminated = True
            grant.termination_timestamp = now
            self.db.flush()
            self._record(
                EventKind.GRANT_TERMINATED,
                caller,
                now,
                grant_id,
                termination_timestamp=now,
                vested_options=vested_for_grant(grant, now),
                exercise_deadline=exercise_deadline(grant),
            )
        logger.info("Terminated grant %s at %s", grant_id, now)
        return grant

    def burn(self, caller: str, grant_id: int) -> None:
        with self._command("burn") as now:
            grant = self.gate.load_for_custodian_or_admin(grant_id, caller)
            ensure_burnable(grant, now)
            custodian = grant.custodian
            exercised = grant.exercised_options
            total = grant.total_options
            self.store.delete(grant)
            self._record(
                EventKind.GRANT_BURNED,
                caller,
                now,
                grant_id,
                custodian=custodian,
                exercised_options=exercised,
                total_options=total,
            )
        logger.info("Burned grant %s", grant_id)

    # Transfer gate

    def approve_transfer(self, caller: str, grant_id: int, destination: str) -> TransferApproval:
        with self._command("approve_transfer") as now:
            approval = self.gate.approve(grant_id, destination, caller)
            self._record(EventKind.TRANSFER_APPROVED, caller, now, grant_id, destination=approval.destination)
        return approval

    def revoke_transfer_approval(self, caller: str, grant_id: int) -> str | None:
        with self._command("revoke_transfer_approval") as now:
            cleared = self.gate.revoke(grant_id, caller)
            self._record(EventKind.TRANSFER_REVOKED, caller, now, grant_id, destination=cleared)
        return cleared

    def execute_approved_transfer(self, caller: str, grant_id: int, destination: str | None = None) -> Grant:
        with self._command("execute_approved_transfer") as now:
            previous, moved_to = self.gate.execute(grant_id, caller, destination)
            self._record(EventKind.TRANSFER_EXECUTED, caller, now, grant_id, source=previous, destination=moved_to)
            grant = self.store.get(grant_id)
        logger.info("Grant %s recovered from %s to %s", grant_id, previous, moved_to)
        return grant

    def transfer(self, caller: str, grant_id: int, destination: str) -> None:
        try:
            with self._command("transfer"):
                self.gate.attempt_transfer(grant_id, caller, destination)
        except TransferBlocked as exc:
            logger.warning("Blocked custody change: %s", exc.context)
            raise

    # Administration

    def set_treasury(self, caller: str, treasury_address: str) -> ControllerState:
        with self._command("set_treasury") as now:
            self.roles.require(caller, Role.ADMIN)
            new_address = require_address(treasury_address, "treasury")
            state = self.controls()
            previous = state.treasury_address
            state.treasury_address = new_address
            self.db.flush()
            self._record(EventKind.TREASURY_UPDATED, caller, now, previous=previous, current=new_address)
        return state

    def set_exercise_paused(self, caller: str, paused: bool) -> ControllerState:
        with self._command("pause" if paused else "unpause") as now:
            self.roles.require(caller, Role.ADMIN)
            state = self.controls()
            state.exercise_paused = paused
            self.db.flush()
            kind = EventKind.EXERCISE_PAUSED if paused else EventKind.EXERCISE_UNPAUSED
            self._record(kind, caller, now)
        return state

    def credit_payment(self, caller: str, address: str, amount: int) -> int:
        with self._command("credit_payment"):
            self.roles.require(caller, Role.ADMIN)
            self.payment_asset.credit(address, amount)
        return self.payment_asset.balance_of(require_address(address, "recipient"))

    def approve_payment(self, caller: str, amount: int) -> int:
        with self._command("approve_payment"):
            self.payment_asset.approve(caller, self.settings.ledger_address, amount)
        return self.payment_asset.allowance(caller, self.settings.ledger_address)

    # Reads

    def _is_privileged(self, caller: str) -> bool:
        return self.roles.has_role(caller, Role.ADMIN) or self.roles.has_role(caller, Role.ISSUER)

    def _readable_grant(self, caller: str, grant_id: int) -> Grant:
        grant = self.store.find(grant_id)
        if grant is None:
            raise GrantNotFound(grant_id)
        if grant.custodian == caller or self._is_privileged(caller):
            return grant
        raise GrantNotFound(grant_id)

    def get_grant(self, caller: str, grant_id: int) -> Grant:
        return self._readable_grant(caller, grant_id)

    def list_grants(self, caller: str, holder: str | None = None, limit: int = 50, offset: int = 0) -> list[Grant]:
        holder = holder or caller
        if holder != caller and not self._is_privileged(caller):
            return []
        return self.store.list_for_custodian(holder, limit=limit, offset=offset)

    def summary(self, caller: str, grant_id: int, as_of: int | None = None) -> GrantVestingSummary:
        grant = self._readable_grant(caller, grant_id)
        return summarize_grant(grant, self.clock() if as_of is None else as_of)

    def exercise_cost(self, caller: str, grant_id: int, amount: int) -> int:
        if amount < 0:
            raise InvalidAmount("Amount cannot be negative", grant_id=grant_id, amount=amount)
        grant = self._readable_grant(caller, grant_id)
        return exercise_cost(amount, grant.strike_price)

    def pending_approval(self, caller: str, grant_id: int) -> TransferApproval | None:
        return self.store.get_approval(self._readable_grant(caller, grant_id))

    def events(self, caller: str, grant_id: int) -> list[LedgerEvent]:
        # Burned grants keep their history, readable by admins and issuers.
        if not self._is_privileged(caller):
            self._readable_grant(caller, grant_id)
        stmt = select(LedgerEvent).where(LedgerEvent.grant_id == grant_id).order_by(LedgerEvent.id.asc())
        return list(self.db.scalars(stmt).all())
