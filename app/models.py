from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from app.core.database import Base

UINT256_MAX = 2**256 - 1
ADDRESS_LENGTH = 128


class Uint256(TypeDecorator):
    """Unsigned 256-bit integer stored as a decimal string so no backend truncates it."""

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0 or value > UINT256_MAX:
            raise ValueError(f"{value} is outside the uint256 range")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class Role(str, Enum):
    ADMIN = "admin"
    ISSUER = "issuer"


class EventKind(str, Enum):
    GRANT_CREATED = "grant_created"
    OPTIONS_EXERCISED = "options_exercised"
    GRANT_TERMINATED = "grant_terminated"
    GRANT_BURNED = "grant_burned"
    TRANSFER_APPROVED = "transfer_approved"
    TRANSFER_REVOKED = "transfer_revoked"
    TRANSFER_EXECUTED = "transfer_executed"
    TREASURY_UPDATED = "treasury_updated"
    EXERCISE_PAUSED = "exercise_paused"
    EXERCISE_UNPAUSED = "exercise_unpaused"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), unique=True, index=True, nullable=False)
    api_key_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class RoleAssignment(Base):
    __tablename__ = "role_assignments"
    __table_args__ = (UniqueConstraint("address", "role", name="uq_role_assignment"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True, nullable=False)
    role: Mapped[Role] = mapped_column(SQLEnum(Role), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Grant(Base):
    __tablename__ = "grants"
    # Burned ids must never be handed out again.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    custodian: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), index=True, nullable=False)
    total_options: Mapped[int] = mapped_column(Uint256, nullable=False)
    exercised_options: Mapped[int] = mapped_column(Uint256, default=0, nullable=False)
    strike_price: Mapped[int] = mapped_column(Uint256, nullable=False)
    vesting_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cliff_duration: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vesting_duration: Mapped[int] = mapped_column(BigInteger, nullable=False)
    post_termination_window: Mapped[int] = mapped_column(BigInteger, nullable=False)
    terminated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    termination_timestamp: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    transfer_approval: Mapped["TransferApproval | None"] = relationship(
        back_populates="grant", cascade="all, delete-orphan", uselist=False
    )


class TransferApproval(Base):
    __tablename__ = "transfer_approvals"

    grant_id: Mapped[int] = mapped_column(ForeignKey("grants.id"), primary_key=True)
    destination: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    approved_by: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    grant: Mapped[Grant] = relationship(back_populates="transfer_approval")


class AssetSupply(Base):
    __tablename__ = "asset_supplies"

    asset: Mapped[str] = mapped_column(String(16), primary_key=True)
    decimals: Mapped[int] = mapped_column(Integer, nullable=False)
    total_supply: Mapped[int] = mapped_column(Uint256, default=0, nullable=False)
    cap: Mapped[int | None] = mapped_column(Uint256, nullable=True)


class AssetBalance(Base):
    __tablename__ = "asset_balances"

    asset: Mapped[str] = mapped_column(String(16), primary_key=True)
    address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    balance: Mapped[int] = mapped_column(Uint256, default=0, nullable=False)


class AssetAllowance(Base):
    __tablename__ = "asset_allowances"

    asset: Mapped[str] = mapped_column(String(16), primary_key=True)
    owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    spender: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    amount: Mapped[int] = mapped_column(Uint256, default=0, nullable=False)


class ControllerState(Base):
    __tablename__ = "controller_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    treasury_address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    exercise_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class LedgerEvent(Base):
    __tablename__ = "ledger_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    kind: Mapped[EventKind] = mapped_column(SQLEnum(EventKind), nullable=False, index=True)
    grant_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    actor: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    ledger_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
