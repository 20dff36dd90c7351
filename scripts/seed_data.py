"""
기본 상품/잔액 시드 스크립트
투자(일 단위), 라이브 트레이드(시간 단위) 상품과 테스트 사용자 잔액을 생성
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decimal import Decimal

from brokerapi.database.session import get_db_context
from brokerapi.models.balance import BalanceType
from brokerapi.models.position import Plan, PositionKind
from brokerapi.models.transaction import TransactionType
from brokerapi.repositories.balance_repository import BalanceRepository
from brokerapi.repositories.plan_repository import PlanRepository
from brokerapi.services.balance_service import BalanceService

DEFAULT_PLANS = [
    # (kind, name, min, max, 기간당 수익률, 기간 수)
    (PositionKind.INVESTMENT, "Starter", "100", "1000", "0.02", 7),
    (PositionKind.INVESTMENT, "Growth", "1000", "10000", "0.025", 14),
    (PositionKind.INVESTMENT, "Premium", "10000", None, "0.03", 30),
    (PositionKind.LIVE_TRADE, "Scalper", "50", "5000", "0.001", 24),
    (PositionKind.LIVE_TRADE, "Swing", "500", None, "0.0015", 72),
]

DEMO_USERS = [(1, "500"), (2, "2500"), (3, "15000")]


def seed_plans():
    """기본 상품 시드 (이름 기준 중복 생성 안 함)"""
    with get_db_context() as db:
        repo = PlanRepository(db)
        existing = {name for (name,) in db.query(Plan.name).all()}
        created = 0
        for kind, name, min_amount, max_amount, rate, duration in DEFAULT_PLANS:
            if name in existing:
                continue
            repo.create_plan(
                kind=kind,
                name=name,
                min_amount=Decimal(min_amount),
                max_amount=Decimal(max_amount) if max_amount else None,
                profit_rate=Decimal(rate),
                duration=duration,
                commit=False,
            )
            created += 1
    print(f"✅ 상품 시드 완료: {created}개 생성, {len(existing)}개 기존")


def seed_balances():
    """데모 사용자 잔액 생성 + deposit 입금"""
    with get_db_context() as db:
        balance_repo = BalanceRepository(db)
        service = BalanceService(db)
        for user_id, deposit in DEMO_USERS:
            if balance_repo.get_model(user_id) is not None:
                print(f"   user {user_id}: 이미 존재")
                continue
            balance_repo.create_balance(user_id, commit=False)
            service.adjust(
                user_id=user_id,
                balance_type=BalanceType.DEPOSIT,
                delta=Decimal(deposit),
                description="Seed deposit",
                transaction_type=TransactionType.DEPOSIT,
                commit=False,
            )
            print(f"   user {user_id}: deposit {deposit}")
    print(f"✅ 잔액 시드 완료: {len(DEMO_USERS)}명")


if __name__ == "__main__":
    seed_plans()
    seed_balances()
