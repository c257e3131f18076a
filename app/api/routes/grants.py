from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_current_account, get_ledger
from app.models import Account, Grant, LedgerEvent, TransferApproval
from app.schemas import (
    ExerciseCostRead,
    ExerciseCreate,
    ExerciseReceipt,
    GrantCreate,
    GrantRead,
    GrantTransfer,
    GrantVestingSummary,
    LedgerEventRead,
    TransferApprovalRead,
    TransferExecute,
)
from app.services.ledger import OptionLedger

router = APIRouter(prefix="/api/grants", tags=["grants"])


@router.post("", response_model=GrantRead, status_code=status.HTTP_201_CREATED)
def issue_grant(
    payload: GrantCreate,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Grant:
    data = payload.model_dump()
    holder = data.pop("holder")
    return ledger.issue_grant(current_account.address, holder, **data)


@router.get("", response_model=list[GrantRead])
def list_grants(
    holder: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> list[Grant]:
    if holder is not None:
        holder = holder.strip().lower()
    return ledger.list_grants(current_account.address, holder, limit=limit, offset=offset)


@router.get("/{grant_id}", response_model=GrantRead)
def get_grant(
    grant_id: int,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Grant:
    return ledger.get_grant(current_account.address, grant_id)


@router.get("/{grant_id}/summary", response_model=GrantVestingSummary)
def grant_summary(
    grant_id: int,
    as_of: int | None = Query(default=None, ge=0),
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> GrantVestingSummary:
    return ledger.summary(current_account.address, grant_id, as_of)


@router.get("/{grant_id}/exercise-cost", response_model=ExerciseCostRead)
def get_exercise_cost(
    grant_id: int,
    amount: int = Query(ge=0),
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> ExerciseCostRead:
    cost = ledger.exercise_cost(current_account.address, grant_id, amount)
    grant = ledger.get_grant(current_account.address, grant_id)
    return ExerciseCostRead(grant_id=grant_id, amount=amount, strike_price=grant.strike_price, cost=cost)


@router.post("/{grant_id}/exercise", response_model=ExerciseReceipt)
def exercise(
    grant_id: int,
    payload: ExerciseCreate,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> ExerciseReceipt:
    result = ledger.exercise(current_account.address, grant_id, payload.amount)
    return ExerciseReceipt(
        grant_id=result.grant_id,
        holder=result.holder,
        amount=result.amount,
        cost=result.cost,
        minted_units=result.minted_units,
        exercised_options=result.exercised_options,
    )


@router.post("/{grant_id}/terminate", response_model=GrantRead)
def terminate_grant(
    grant_id: int,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Grant:
    return ledger.terminate(current_account.address, grant_id)


@router.post("/{grant_id}/burn", status_code=status.HTTP_204_NO_CONTENT)
def burn_grant(
    grant_id: int,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Response:
    ledger.burn(current_account.address, grant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{grant_id}/transfer", response_model=GrantRead)
def transfer_grant(
    grant_id: int,
    payload: GrantTransfer,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Grant:
    ledger.transfer(current_account.address, grant_id, payload.destination)
    return ledger.get_grant(current_account.address, grant_id)


@router.get("/{grant_id}/transfer-approval", response_model=TransferApprovalRead | None)
def get_transfer_approval(
    grant_id: int,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> TransferApproval | None:
    return ledger.pending_approval(current_account.address, grant_id)


@router.put("/{grant_id}/transfer-approval", response_model=TransferApprovalRead)
def approve_transfer(
    grant_id: int,
    payload: GrantTransfer,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> TransferApproval:
    return ledger.approve_transfer(current_account.address, grant_id, payload.destination)


@router.delete("/{grant_id}/transfer-approval", status_code=status.HTTP_204_NO_CONTENT)
def revoke_transfer_approval(
    grant_id: int,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Response:
    ledger.revoke_transfer_approval(current_account.address, grant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{grant_id}/transfer-approval/execute", response_model=GrantRead)
def execute_approved_transfer(
    grant_id: int,
    payload: TransferExecute | None = None,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> Grant:
    destination = payload.destination if payload is not None else None
    return ledger.execute_approved_transfer(current_account.address, grant_id, destination)


@router.get("/{grant_id}/events", response_model=list[LedgerEventRead])
def list_events(
    grant_id: int,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> list[LedgerEvent]:
    return ledger.events(current_account.address, grant_id)
