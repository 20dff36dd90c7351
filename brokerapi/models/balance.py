"""
사용자 잔액 데이터 모델

한 사용자의 사용 가능 자금은 유형별 하위 잔액(profit, deposit, bonus, card, credit_score)으로
나뉘며, total_balance 는 항상 profit + deposit + bonus + card 의 합이어야 합니다.
(credit_score 는 신용 점수 성격이라 합계에서 제외)
"""

import enum
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from brokerapi.models.base import BaseModel, BigIntPK, Money


class BalanceType(str, enum.Enum):
    PROFIT = "profit"
    DEPOSIT = "deposit"
    BONUS = "bonus"
    CARD = "card"
    CREDIT_SCORE = "credit_score"

    @property
    def column_name(self) -> str:
        return f"{self.value}_balance"

    @property
    def counts_toward_total(self) -> bool:
        return self is not BalanceType.CREDIT_SCORE


# total_balance 를 구성하는 하위 잔액
TOTAL_COMPONENTS = tuple(t for t in BalanceType if t.counts_toward_total)


class UserBalance(BaseModel):
    """
    사용자 잔액 테이블 - 사용자당 1행

    원칙:
    1. 하위 잔액은 음수가 될 수 없음 (CHECK 제약)
    2. total_balance 는 파생 값이며 하위 잔액과 같은 UPDATE 에서 함께 갱신됨
    3. BalanceService 외에는 이 행을 직접 수정하지 않음
    """

    __tablename__ = "user_balances"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_balances_user_id"),
        CheckConstraint("profit_balance >= 0", name="ck_profit_balance_non_negative"),
        CheckConstraint("deposit_balance >= 0", name="ck_deposit_balance_non_negative"),
        CheckConstraint("bonus_balance >= 0", name="ck_bonus_balance_non_negative"),
        CheckConstraint("card_balance >= 0", name="ck_card_balance_non_negative"),
        CheckConstraint(
            "credit_score_balance >= 0", name="ck_credit_score_balance_non_negative"
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    profit_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    deposit_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    bonus_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    card_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    credit_score_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    # 파생 필드 - profit + deposit + bonus + card
    total_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    def get_sub_balance(self, balance_type: BalanceType) -> Decimal:
        return Decimal(getattr(self, balance_type.column_name) or 0)

    def computed_total(self) -> Decimal:
        return sum(
            (self.get_sub_balance(component) for component in TOTAL_COMPONENTS),
            Decimal("0.00"),
        )

    @classmethod
    def total_expression(cls):
        """SQL 레벨 합계 식 (일괄 보정/정합성 검사용)"""
        return (
            cls.profit_balance + cls.deposit_balance + cls.bonus_balance + cls.card_balance
        )
