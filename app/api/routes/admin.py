from fastapi import APIRouter, Depends

from app.api.deps import get_current_account, get_ledger
from app.models import Account, ControllerState
from app.schemas import ControllerStatus, TreasuryUpdate
from app.services.ledger import OptionLedger

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _status(ledger: OptionLedger, state: ControllerState) -> ControllerStatus:
    return ControllerStatus(
        treasury_address=state.treasury_address,
        exercise_paused=state.exercise_paused,
        ledger_address=ledger.settings.ledger_address,
        equity_symbol=ledger.settings.equity_symbol,
        payment_symbol=ledger.settings.payment_symbol,
    )


@router.get("/status", response_model=ControllerStatus)
def controller_status(
    ledger: OptionLedger = Depends(get_ledger),
    _: Account = Depends(get_current_account),
) -> ControllerStatus:
    return _status(ledger, ledger.read_controls())


@router.put("/treasury", response_model=ControllerStatus)
def update_treasury(
    payload: TreasuryUpdate,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> ControllerStatus:
    return _status(ledger, ledger.set_treasury(current_account.address, payload.treasury_address))


@router.post("/pause", response_model=ControllerStatus)
def pause_exercise(
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> ControllerStatus:
    return _status(ledger, ledger.set_exercise_paused(current_account.address, True))


@router.post("/unpause", response_model=ControllerStatus)
def unpause_exercise(
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> ControllerStatus:
    return _status(ledger, ledger.set_exercise_paused(current_account.address, False))
