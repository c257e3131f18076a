from fastapi import APIRouter, Depends

from app.api.deps import get_current_account, get_ledger
from app.models import Account
from app.schemas import AllowanceRead, AllowanceUpdate, BalanceRead, PaymentCredit, SupplyRead
from app.services.ledger import OptionLedger

router = APIRouter(prefix="/api", tags=["assets"])


@router.put("/payment/allowance", response_model=AllowanceRead)
def approve_payment(
    payload: AllowanceUpdate,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> AllowanceRead:
    amount = ledger.approve_payment(current_account.address, payload.amount)
    return AllowanceRead(
        asset=ledger.payment_asset.symbol,
        owner=current_account.address,
        spender=ledger.settings.ledger_address,
        amount=amount,
    )


@router.post("/payment/credit", response_model=BalanceRead)
def credit_payment(
    payload: PaymentCredit,
    ledger: OptionLedger = Depends(get_ledger),
    current_account: Account = Depends(get_current_account),
) -> BalanceRead:
    balance = ledger.credit_payment(current_account.address, payload.address, payload.amount)
    return BalanceRead(asset=ledger.payment_asset.symbol, address=payload.address, balance=balance)


@router.get("/payment/balances/{address}", response_model=BalanceRead)
def payment_balance(
    address: str,
    ledger: OptionLedger = Depends(get_ledger),
    _: Account = Depends(get_current_account),
) -> BalanceRead:
    address = address.strip().lower()
    return BalanceRead(asset=ledger.payment_asset.symbol, address=address, balance=ledger.payment_asset.balance_of(address))


@router.get("/equity/balances/{address}", response_model=BalanceRead)
def equity_balance(
    address: str,
    ledger: OptionLedger = Depends(get_ledger),
    _: Account = Depends(get_current_account),
) -> BalanceRead:
    address = address.strip().lower()
    return BalanceRead(asset=ledger.equity.symbol, address=address, balance=ledger.equity.balance_of(address))


@router.get("/equity/supply", response_model=SupplyRead)
def equity_supply(
    ledger: OptionLedger = Depends(get_ledger),
    _: Account = Depends(get_current_account),
) -> SupplyRead:
    supply = ledger.equity.supply_info()
    return SupplyRead(asset=supply.asset, decimals=supply.decimals, total_supply=supply.total_supply, cap=supply.cap)
