from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_account, get_db_session, require_admin
from app.core.errors import AccountNotFound
from app.models import Account, Role
from app.schemas import AccountCreate, AccountCreated, AccountRead
from app.services.accounts import get_account, register_account
from app.services.roles import RoleAuthority

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


def _account_read(db: Session, account: Account) -> AccountRead:
    return AccountRead(
        address=account.address,
        roles=RoleAuthority(db).roles_of(account.address),
        created_at=account.created_at,
    )


@router.post("", response_model=AccountCreated, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db_session),
    _: Account = Depends(require_admin),
) -> AccountCreated:
    account, api_key = register_account(db, payload.address, payload.roles)
    db.commit()
    db.refresh(account)
    read = _account_read(db, account)
    return AccountCreated(**read.model_dump(), api_key=api_key)


@router.get("/me", response_model=AccountRead)
def me(
    db: Session = Depends(get_db_session),
    current_account: Account = Depends(get_current_account),
) -> AccountRead:
    return _account_read(db, current_account)


@router.put("/{address}/roles/{role}", response_model=AccountRead)
def grant_role(
    address: str,
    role: Role,
    db: Session = Depends(get_db_session),
    _: Account = Depends(require_admin),
) -> AccountRead:
    account = get_account(db, address.strip().lower())
    if account is None:
        raise AccountNotFound(f"Account {address} not found", address=address)

    RoleAuthority(db).grant(account.address, role)
    db.commit()
    return _account_read(db, account)


@router.delete("/{address}/roles/{role}", response_model=AccountRead)
def revoke_role(
    address: str,
    role: Role,
    db: Session = Depends(get_db_session),
    current_admin: Account = Depends(require_admin),
) -> AccountRead:
    account = get_account(db, address.strip().lower())
    if account is None:
        raise AccountNotFound(f"Account {address} not found", address=address)
    if account.address == current_admin.address and role == Role.ADMIN:
        raise HTTPException(status_code=400, detail="Admins cannot revoke their own admin role")

    RoleAuthority(db).revoke(account.address, role)
    db.commit()
    return _account_read(db, account)
