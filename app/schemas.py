from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from app.models import ADDRESS_LENGTH, UINT256_MAX, EventKind, Role


def normalize_address(value: str) -> str:
    return value.strip().lower()


Address = Annotated[str, Field(min_length=1, max_length=ADDRESS_LENGTH), AfterValidator(normalize_address)]
Uint = Annotated[int, Field(ge=0, le=UINT256_MAX)]
PositiveUint = Annotated[int, Field(gt=0, le=UINT256_MAX)]
Timestamp = Annotated[int, Field(ge=0, le=2**63 - 1)]


class GrantCreate(BaseModel):
    holder: Address
    total_options: PositiveUint
    strike_price: PositiveUint
    vesting_start: Timestamp
    cliff_duration: Timestamp
    vesting_duration: Annotated[int, Field(gt=0, le=2**63 - 1)]
    post_termination_window: Annotated[int, Field(gt=0, le=2**63 - 1)]

    @model_validator(mode="after")
    def validate_vesting(self) -> "GrantCreate":
        if self.cliff_duration > self.vesting_duration:
            raise ValueError("cliff_duration cannot exceed vesting_duration")
        return self


class GrantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    custodian: str
    total_options: int
    exercised_options: int
    strike_price: int
    vesting_start: int
    cliff_duration: int
    vesting_duration: int
    post_termination_window: int
    terminated: bool
    termination_timestamp: int
    created_at: datetime


class GrantVestingSummary(BaseModel):
    grant_id: int
    custodian: str
    as_of: int
    state: str
    total_options: int
    vested_options: int
    unvested_options: int
    exercised_options: int
    exercisable_options: int
    exercisable_cost: int
    terminated: bool
    exercise_deadline: int | None
    is_expired: bool
    is_fully_exercised: bool
    is_burnable: bool


class ExerciseCreate(BaseModel):
    amount: PositiveUint


class ExerciseReceipt(BaseModel):
    grant_id: int
    holder: str
    amount: int
    cost: int
    minted_units: int
    exercised_options: int


class ExerciseCostRead(BaseModel):
    grant_id: int
    amount: int
    strike_price: int
    cost: int


class GrantTransfer(BaseModel):
    destination: Address


class TransferExecute(BaseModel):
    destination: Address | None = None


class TransferApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    grant_id: int
    destination: str
    approved_by: str
    created_at: datetime


class LedgerEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: EventKind
    grant_id: int | None
    actor: str
    ledger_time: int
    payload: dict[str, Any]
    created_at: datetime


class TreasuryUpdate(BaseModel):
    treasury_address: Address


class ControllerStatus(BaseModel):
    treasury_address: str
    exercise_paused: bool
    ledger_address: str
    equity_symbol: str
    payment_symbol: str


class AccountCreate(BaseModel):
    address: Address
    roles: list[Role] = Field(default_factory=list)


class AccountRead(BaseModel):
    address: str
    roles: list[Role]
    created_at: datetime


class AccountCreated(AccountRead):
    api_key: str


class AllowanceUpdate(BaseModel):
    amount: Uint


class PaymentCredit(BaseModel):
    address: Address
    amount: PositiveUint


class BalanceRead(BaseModel):
    asset: str
    address: str
    balance: int


class AllowanceRead(BaseModel):
    asset: str
    owner: str
    spender: str
    amount: int


class SupplyRead(BaseModel):
    asset: str
    decimals: int
    total_supply: int
    cap: int | None
