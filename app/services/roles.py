from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import MissingRole
from app.models import Role, RoleAssignment


class RoleAuthority:
    def __init__(self, db: Session) -> None:
        self.db = db

    def has_role(self, address: str, role: Role) -> bool:
        stmt = select(RoleAssignment.id).where(RoleAssignment.address == address, RoleAssignment.role == role)
        return self.db.scalar(stmt.limit(1)) is not None

    def roles_of(self, address: str) -> list[Role]:
        stmt = select(RoleAssignment.role).where(RoleAssignment.address == address).order_by(RoleAssignment.role)
        return list(self.db.scalars(stmt).all())

    def require(self, address: str, role: Role) -> None:
        if not self.has_role(address, role):
            raise MissingRole(f"{role.value} role required", address=address, role=role.value)

    def grant(self, address: str, role: Role) -> bool:
        if self.has_role(address, role):
            return False
        self.db.add(RoleAssignment(address=address, role=role))
        self.db.flush()
        return True

    def revoke(self, address: str, role: Role) -> bool:
        assignment = self.db.scalar(
            select(RoleAssignment).where(RoleAssignment.address == address, RoleAssignment.role == role)
        )
        if assignment is None:
            return False
        self.db.delete(assignment)
        self.db.flush()
        return True
