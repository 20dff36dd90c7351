"""
잔액 리포지토리 - user_balances 접근

핵심 특징:
- 잔액 변경은 행 잠금(SELECT ... FOR UPDATE) 후 하위 잔액과 total_balance 를
  같은 UPDATE 로 기록합니다 (별도 문장으로 합계를 재계산하지 않음)
- 하위 잔액이 음수가 되는 쓰기는 DB CHECK 제약으로도 차단됩니다
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from brokerapi.core.exceptions import NotFoundError
from brokerapi.models.balance import BalanceType, UserBalance
from brokerapi.repositories.base import BaseRepository
from brokerapi.schemas.balance import BalanceDiscrepancy, BalanceResponse
from brokerapi.utils.money import ZERO, to_money


class BalanceRepository(BaseRepository[UserBalance, BalanceResponse]):
    def __init__(self, db: Session):
        super().__init__(UserBalance, BalanceResponse, db)

    def get_model(self, user_id: int, for_update: bool = False) -> Optional[UserBalance]:
        query = self.db.query(UserBalance).filter(UserBalance.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_model_or_raise(self, user_id: int, for_update: bool = False) -> UserBalance:
        balance = self.get_model(user_id, for_update=for_update)
        if balance is None:
            raise NotFoundError(
                f"Balance record not found for user {user_id}",
                details={"user_id": user_id},
            )
        return balance

    def get_balance(self, user_id: int) -> BalanceResponse:
        """
        사용자 잔액 조회

        Raises:
            NotFoundError: 잔액 레코드가 없음 (가입 시 생성되어야 함)
        """
        return self._to_schema(self.get_model_or_raise(user_id))

    def create_balance(self, user_id: int, commit: bool = True) -> BalanceResponse:
        """가입 시 모든 하위 잔액 0 으로 생성 (가입 처리 측에서 호출)"""
        instance = UserBalance(
            user_id=user_id,
            profit_balance=ZERO,
            deposit_balance=ZERO,
            bonus_balance=ZERO,
            card_balance=ZERO,
            credit_score_balance=ZERO,
            total_balance=ZERO,
        )
        return self._to_schema(self._add(instance, commit=commit))

    def write_sub_balance(
        self, balance: UserBalance, balance_type: BalanceType, new_value: Decimal
    ) -> UserBalance:
        """
        잠긴 잔액 행에 하위 잔액과 total_balance 를 함께 기록 (flush 까지만)

        Args:
            balance: with_for_update 로 조회한 잔액 모델
            balance_type: 변경할 하위 잔액
            new_value: 새 하위 잔액 (0 이상)
        """
        setattr(balance, balance_type.column_name, to_money(new_value))
        balance.total_balance = to_money(balance.computed_total())
        self.db.flush()
        return balance

    def recalculate_total(self, balance: UserBalance) -> UserBalance:
        """하위 잔액 합계로 total_balance 재계산 (flush 까지만)"""
        balance.total_balance = to_money(balance.computed_total())
        self.db.flush()
        return balance

    def find_total_discrepancies(self) -> List[BalanceDiscrepancy]:
        """저장된 total_balance 가 하위 잔액 합계와 다른 사용자 목록"""
        calculated = UserBalance.total_expression()
        rows = (
            self.db.query(UserBalance.user_id, UserBalance.total_balance, calculated)
            .filter(UserBalance.total_balance != calculated)
            .order_by(UserBalance.user_id)
            .all()
        )

        discrepancies = []
        for user_id, stored_total, calculated_total in rows:
            stored = to_money(stored_total or 0)
            expected = to_money(calculated_total or 0)
            discrepancies.append(
                BalanceDiscrepancy(
                    user_id=user_id,
                    stored_total=stored,
                    calculated_total=expected,
                    discrepancy=abs(stored - expected),
                )
            )
        discrepancies.sort(key=lambda d: d.discrepancy, reverse=True)
        return discrepancies

    def recalculate_all_totals(self) -> int:
        """불일치 행 전체를 단일 UPDATE 로 보정 (flush 까지만), 보정 행 수 반환"""
        calculated = UserBalance.total_expression()
        drifted_ids = [
            row[0]
            for row in self.db.query(UserBalance.id)
            .filter(UserBalance.total_balance != calculated)
            .all()
        ]
        if not drifted_ids:
            return 0

        self.db.execute(
            update(UserBalance)
            .where(UserBalance.id.in_(drifted_ids))
            .values(total_balance=calculated)
            .execution_options(synchronize_session="fetch")
        )
        return len(drifted_ids)
