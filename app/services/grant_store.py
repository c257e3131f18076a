from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import GrantNotFound, InvalidGrantParameters
from app.models import UINT256_MAX, Grant, TransferApproval
from app.services.addresses import require_address
from app.services.transfer_gate import ensure_custody_change_allowed

MAX_TIMESTAMP = 2**63 - 1


def _validate_terms(
    total_options: int,
    strike_price: int,
    vesting_start: int,
    cliff_duration: int,
    vesting_duration: int,
    post_termination_window: int,
) -> None:
    problems = []
    if not 0 < total_options <= UINT256_MAX:
        problems.append("total_options must be positive")
    if not 0 < strike_price <= UINT256_MAX:
        problems.append("strike_price must be positive")
    if not 0 <= vesting_start <= MAX_TIMESTAMP:
        problems.append("vesting_start is out of range")
    if not 0 <= cliff_duration <= MAX_TIMESTAMP:
        problems.append("cliff_duration is out of range")
    if not 0 < vesting_duration <= MAX_TIMESTAMP:
        problems.append("vesting_duration must be positive")
    if not 0 < post_termination_window <= MAX_TIMESTAMP:
        problems.append("post_termination_window must be positive")
    if vesting_duration < cliff_duration:
        problems.append("vesting_duration cannot be shorter than cliff_duration")
    if vesting_start + vesting_duration > MAX_TIMESTAMP:
        problems.append("vesting schedule ends beyond the representable time range")

    if problems:
        raise InvalidGrantParameters("; ".join(problems), problems=problems)


class GrantStore:
    def __init__(self, db: Session) -> None:
        self.db = db
        self._authorized_move: tuple[int, str] | None = None

    def create(
        self,
        holder: str,
        *,
        total_options: int,
        strike_price: int,
        vesting_start: int,
        cliff_duration: int,
        vesting_duration: int,
        post_termination_window: int,
    ) -> Grant:
        holder = require_address(holder, "holder")
        _validate_terms(
            total_options, strike_price, vesting_start, cliff_duration, vesting_duration, post_termination_window
        )
        ensure_custody_change_allowed(None, None, holder, None)

        grant = Grant(
            custodian=holder,
            total_options=total_options,
            exercised_options=0,
            strike_price=strike_price,
            vesting_start=vesting_start,
            cliff_duration=cliff_duration,
            vesting_duration=vesting_duration,
            post_termination_window=post_termination_window,
            terminated=False,
            termination_timestamp=0,
        )
        self.db.add(grant)
        self.db.flush()
        return grant

    def find(self, grant_id: int) -> Grant | None:
        return self.db.get(Grant, grant_id)

    def get(self, grant_id: int) -> Grant:
        grant = self.find(grant_id)
        if grant is None:
            raise GrantNotFound(grant_id)
        return grant

    def get_for_custodian(self, grant_id: int, requester: str) -> Grant:
        # Same error whether the grant is missing or held by someone else.
        grant = self.find(grant_id)
        if grant is None or grant.custodian != requester:
            raise GrantNotFound(grant_id)
        return grant

    def list_for_custodian(self, custodian: str, limit: int = 50, offset: int = 0) -> list[Grant]:
        stmt = (
            select(Grant)
            .where(Grant.custodian == custodian)
            .order_by(Grant.id.asc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.scalars(stmt).all())

    @contextmanager
    def authorized_move(self, grant_id: int, destination: str) -> Iterator[None]:
        self._authorized_move = (grant_id, destination)
        try:
            yield
        finally:
            self._authorized_move = None

    def move_custody(self, grant: Grant, destination: str) -> None:
        """The only place a grant's custodian is ever reassigned."""
        ensure_custody_change_allowed(grant.id, grant.custodian, destination, self._authorized_move)
        grant.custodian = destination
        self.db.flush()

    def delete(self, grant: Grant) -> None:
        ensure_custody_change_allowed(grant.id, grant.custodian, None, None)
        self.db.delete(grant)
        self.db.flush()

    def get_approval(self, grant: Grant) -> TransferApproval | None:
        return self.db.get(TransferApproval, grant.id)

    def set_approval(self, grant: Grant, destination: str, approved_by: str) -> TransferApproval:
        approval = self.get_approval(grant)
        if approval is None:
            approval = TransferApproval(grant_id=grant.id, destination=destination, approved_by=approved_by)
            self.db.add(approval)
        else:
            approval.destination = destination
            approval.approved_by = approved_by
        self.db.flush()
        return approval

    def clear_approval(self, grant: Grant) -> str | None:
        approval = self.get_approval(grant)
        if approval is None:
            return None
        destination = approval.destination
        self.db.delete(approval)
        self.db.flush()
        return destination
