"""Soulbound custody with an admin-approved recovery path."""

from typing import TYPE_CHECKING

from app.core.errors import NoPendingApproval, TransferBlocked, TransferNotApproved
from app.models import Grant, Role, TransferApproval
from app.services.addresses import require_address

if TYPE_CHECKING:
    from app.services.grant_store import GrantStore
    from app.services.roles import RoleAuthority


def ensure_custody_change_allowed(
    grant_id: int | None,
    current: str | None,
    destination: str | None,
    authorized_move: tuple[int, str] | None,
) -> None:
    # Issuance has no current custodian and burn has no destination.
    if current is None or destination is None:
        return
    if authorized_move is not None and authorized_move == (grant_id, destination):
        return
    raise TransferBlocked(grant_id, current, destination)


class TransferGate:
    def __init__(self, store: "GrantStore", roles: "RoleAuthority") -> None:
        self.store = store
        self.roles = roles

    def load_for_custodian_or_admin(self, grant_id: int, caller: str) -> Grant:
        if self.roles.has_role(caller, Role.ADMIN):
            return self.store.get(grant_id)
        return self.store.get_for_custodian(grant_id, caller)

    def approve(self, grant_id: int, destination: str, caller: str) -> TransferApproval:
        self.roles.require(caller, Role.ADMIN)
        destination = require_address(destination, "destination")
        grant = self.store.get(grant_id)
        return self.store.set_approval(grant, destination, approved_by=caller)

    def revoke(self, grant_id: int, caller: str) -> str | None:
        self.roles.require(caller, Role.ADMIN)
        grant = self.store.get(grant_id)
        return self.store.clear_approval(grant)

    def execute(self, grant_id: int, caller: str, destination: str | None = None) -> tuple[str, str]:
        grant = self.load_for_custodian_or_admin(grant_id, caller)
        approval = self.store.get_approval(grant)
        if approval is None:
            raise NoPendingApproval(f"Grant {grant_id} has no pending transfer approval", grant_id=grant_id)

        approved = approval.destination
        if destination is not None:
            destination = require_address(destination, "destination")
            if destination != approved:
                raise TransferNotApproved(
                    f"Destination {destination} is not the approved recipient for grant {grant_id}",
                    grant_id=grant_id,
                    destination=destination,
                    approved_destination=approved,
                )

        previous = grant.custodian
        with self.store.authorized_move(grant.id, approved):
            self.store.move_custody(grant, approved)
        self.store.clear_approval(grant)
        return previous, approved

    def attempt_transfer(self, grant_id: int, caller: str, destination: str) -> None:
        grant = self.load_for_custodian_or_admin(grant_id, caller)
        destination = require_address(destination, "destination")
        self.store.move_custody(grant, destination)
