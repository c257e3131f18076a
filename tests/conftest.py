from collections.abc import Generator
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.api.deps import get_clock, get_db_session
from app.core.config import Settings
from app.core.database import Base
from app.main import app
from app.models import Role
from app.services.accounts import register_account
from app.services.ledger import OptionLedger
from ledger_helpers import ADMIN, ALICE, API_KEYS, BOB, MALLORY, FakeClock


def _seed_accounts(db: Session) -> None:
    register_account(db, ADMIN, [Role.ADMIN, Role.ISSUER], api_key=API_KEYS[ADMIN])
    for address in (ALICE, BOB, MALLORY):
        register_account(db, address, api_key=API_KEYS[address])
    db.commit()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)

    db = TestingSessionLocal()
    _seed_accounts(db)
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def ledger(db_session: Session, settings: Settings, clock: FakeClock) -> OptionLedger:
    return OptionLedger(db_session, settings=settings, clock=clock)


@pytest.fixture()
def client(tmp_path, clock: FakeClock) -> Generator[TestClient, None, None]:
    test_db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{test_db_path}", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)

    Base.metadata.create_all(bind=engine)

    seed = TestingSessionLocal()
    try:
        _seed_accounts(seed)
    finally:
        seed.close()

    def override_get_db() -> Generator[Session, None, None]:
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
