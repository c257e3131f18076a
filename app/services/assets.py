"""Fungible asset collaborators used during exercise settlement.

Settlement only depends on the two protocols below. The database-backed
implementations write through the ledger's own session, so a rolled-back
command also rolls back every balance and supply change it made.
"""

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import InsufficientAllowance, InsufficientBalance, InvalidAmount, SupplyCapExceeded
from app.models import UINT256_MAX, AssetAllowance, AssetBalance, AssetSupply
from app.services.addresses import require_address

logger = logging.getLogger(__name__)


class EquityMinter(Protocol):
    decimals: int

    def mint(self, to: str, units: int) -> None: ...


class PaymentMover(Protocol):
    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None: ...


class _AssetLedger:
    def __init__(self, db: Session, symbol: str, decimals: int, cap: int | None = None) -> None:
        self.db = db
        self.symbol = symbol
        self.decimals = decimals
        self._cap = cap

    def _empty_supply(self) -> AssetSupply:
        return AssetSupply(asset=self.symbol, decimals=self.decimals, total_supply=0, cap=self._cap)

    def _supply(self) -> AssetSupply:
        supply = self.db.get(AssetSupply, self.symbol)
        if supply is None:
            supply = self._empty_supply()
            self.db.add(supply)
            self.db.flush()
        return supply

    def _balance_row(self, address: str) -> AssetBalance:
        row = self.db.get(AssetBalance, (self.symbol, address))
        if row is None:
            row = AssetBalance(asset=self.symbol, address=address, balance=0)
            self.db.add(row)
            self.db.flush()
        return row

    def total_supply(self) -> int:
        supply = self.db.get(AssetSupply, self.symbol)
        return supply.total_supply if supply is not None else 0

    def supply_info(self) -> AssetSupply:
        supply = self.db.get(AssetSupply, self.symbol)
        return supply if supply is not None else self._empty_supply()

    def balance_of(self, address: str) -> int:
        row = self.db.get(AssetBalance, (self.symbol, address))
        return row.balance if row is not None else 0

    def _issue(self, to: str, amount: int) -> None:
        supply = self._supply()
        new_supply = supply.total_supply + amount
        if supply.cap is not None and new_supply > supply.cap:
            raise SupplyCapExceeded(
                f"{self.symbol}: mint would exceed supply cap",
                asset=self.symbol,
                requested=amount,
                total_supply=supply.total_supply,
                cap=supply.cap,
            )
        if new_supply > UINT256_MAX:
            raise SupplyCapExceeded(f"{self.symbol}: supply overflow", asset=self.symbol, requested=amount)

        supply.total_supply = new_supply
        row = self._balance_row(to)
        row.balance = row.balance + amount
        self.db.flush()


class CappedEquityAsset(_AssetLedger):
    def mint(self, to: str, units: int) -> None:
        to = require_address(to, "recipient")
        if units <= 0:
            raise InvalidAmount(f"{self.symbol}: mint amount must be positive", amount=units)
        self._issue(to, units)
        logger.info("Minted %s %s units to %s", units, self.symbol, to)


class PaymentAsset(_AssetLedger):
    def allowance(self, owner: str, spender: str) -> int:
        row = self.db.get(AssetAllowance, (self.symbol, owner, spender))
        return row.amount if row is not None else 0

    def approve(self, owner: str, spender: str, amount: int) -> None:
        spender = require_address(spender, "spender")
        if amount < 0 or amount > UINT256_MAX:
            raise InvalidAmount(f"{self.symbol}: allowance out of range", amount=amount)

        row = self.db.get(AssetAllowance, (self.symbol, owner, spender))
        if row is None:
            row = AssetAllowance(asset=self.symbol, owner=owner, spender=spender, amount=amount)
            self.db.add(row)
        else:
            row.amount = amount
        self.db.flush()

    def credit(self, to: str, amount: int) -> None:
        to = require_address(to, "recipient")
        if amount <= 0:
            raise InvalidAmount(f"{self.symbol}: credit amount must be positive", amount=amount)
        self._issue(to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        to = require_address(to, "recipient")

        current_allowance = self.allowance(owner, spender)
        if current_allowance < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: insufficient allowance",
                asset=self.symbol,
                owner=owner,
                spender=spender,
                required=amount,
                allowance=current_allowance,
            )

        owner_balance = self.balance_of(owner)
        if owner_balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: transfer amount exceeds balance",
                asset=self.symbol,
                owner=owner,
                required=amount,
                balance=owner_balance,
            )

        if current_allowance != UINT256_MAX:
            self.approve(owner, spender, current_allowance - amount)

        source = self._balance_row(owner)
        source.balance = owner_balance - amount
        target = self._balance_row(to)
        target.balance = target.balance + amount
        self.db.flush()
