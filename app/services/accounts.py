import hashlib
import logging
import secrets

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccountAlreadyExists
from app.models import Account, Role
from app.services.addresses import require_address
from app.services.roles import RoleAuthority

logger = logging.getLogger(__name__)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    return f"slk_{secrets.token_urlsafe(32)}"


def authenticate(db: Session, api_key: str | None) -> Account | None:
    if not api_key:
        return None
    return db.scalar(select(Account).where(Account.api_key_hash == hash_api_key(api_key)).limit(1))


def get_account(db: Session, address: str) -> Account | None:
    return db.scalar(select(Account).where(Account.address == address).limit(1))


def register_account(
    db: Session,
    address: str,
    roles: list[Role] | None = None,
    api_key: str | None = None,
) -> tuple[Account, str]:
    address = require_address(address, "address")
    if get_account(db, address) is not None:
        raise AccountAlreadyExists(f"Account {address} already exists", address=address)

    api_key = api_key or generate_api_key()
    account = Account(address=address, api_key_hash=hash_api_key(api_key))
    db.add(account)
    db.flush()

    authority = RoleAuthority(db)
    for role in roles or []:
        authority.grant(address, role)

    return account, api_key


def ensure_bootstrap_admin(db: Session, address: str, api_key: str) -> Account:
    address = require_address(address, "bootstrap admin address")
    account = get_account(db, address)
    if account is None:
        account, _ = register_account(db, address, [Role.ADMIN, Role.ISSUER], api_key=api_key)
        logger.info("Bootstrapped admin account %s", address)
    else:
        account.api_key_hash = hash_api_key(api_key)
        authority = RoleAuthority(db)
        authority.grant(address, Role.ADMIN)
        authority.grant(address, Role.ISSUER)
    db.commit()
    return account
