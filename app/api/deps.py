from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.models import Account, Role
from app.services.accounts import authenticate, get_account
from app.services.ledger import Clock, OptionLedger, system_clock
from app.services.roles import RoleAuthority

settings = get_settings()


def get_db_session() -> Generator[Session, None, None]:
    yield from get_db()


def get_clock() -> Clock:
    return system_clock


def get_current_account(
    x_api_key: str | None = Header(default=None),
    db: Session = Depends(get_db_session),
) -> Account:
    if not settings.auth_enabled:
        stub = get_account(db, settings.bootstrap_admin_address.strip().lower())
        if stub is not None:
            return stub
        raise HTTPException(status_code=503, detail="Auth disabled but no admin account exists")

    if not x_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    account = authenticate(db, x_api_key)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    return account


def require_admin(
    current_account: Account = Depends(get_current_account),
    db: Session = Depends(get_db_session),
) -> Account:
    if not RoleAuthority(db).has_role(current_account.address, Role.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_account


def get_ledger(db: Session = Depends(get_db_session), clock: Clock = Depends(get_clock)) -> OptionLedger:
    return OptionLedger(db, settings=settings, clock=clock)
