from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from brokerapi.config import Settings
from brokerapi.models.base import Base
from brokerapi.models import balance, distribution, position, transaction  # noqa: F401
from brokerapi.models.balance import BalanceType
from brokerapi.models.position import PositionKind
from brokerapi.models.transaction import TransactionType
from brokerapi.repositories.balance_repository import BalanceRepository
from brokerapi.repositories.plan_repository import PlanRepository
from brokerapi.services.balance_service import BalanceService



@pytest.fixture
def engine():
    """인메모리 SQLite 엔진 (테스트마다 새 스키마)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def clamp_settings():
    return Settings(_env_file=None, AUTH_TOKEN="test-token", BALANCE_DEDUCTION_POLICY="CLAMP")


@pytest.fixture
def reject_settings():
    return Settings(_env_file=None, AUTH_TOKEN="test-token", BALANCE_DEDUCTION_POLICY="REJECT")


@pytest.fixture
def make_user(db, clamp_settings):
    """잔액 레코드 생성 + 선택적으로 deposit 입금"""

    def _make(user_id: int, deposit: str = None):
        BalanceRepository(db).create_balance(user_id)
        if deposit is not None:
            BalanceService(db, settings=clamp_settings).adjust(
                user_id=user_id,
                balance_type=BalanceType.DEPOSIT,
                delta=Decimal(deposit),
                description="Initial deposit",
                transaction_type=TransactionType.DEPOSIT,
            )
        return user_id

    return _make


@pytest.fixture
def make_plan(db):
    def _make(
        kind: PositionKind = PositionKind.INVESTMENT,
        min_amount: str = "100",
        max_amount: str = "1000",
        rate: str = "0.02",
        duration: int = 2,
        is_active: bool = True,
        name: str = "Starter",
    ):
        return PlanRepository(db).create_plan(
            kind=kind,
            name=name,
            min_amount=Decimal(min_amount),
            max_amount=Decimal(max_amount) if max_amount else None,
            profit_rate=Decimal(rate),
            duration=duration,
            is_active=is_active,
        )

    return _make
