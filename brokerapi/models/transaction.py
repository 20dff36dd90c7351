"""
거래 내역 데이터 모델

잔액에 영향을 주는 모든 이벤트를 저장하는 원장(Ledger) 테이블입니다.
하위 잔액 변경 1건당 정확히 1건의 거래 레코드가 같은 트랜잭션 안에서 기록됩니다.
"""

import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Enum, Text
from sqlalchemy.orm import Mapped, mapped_column

from brokerapi.models.balance import BalanceType
from brokerapi.models.base import BaseModel, BigIntPK, Money, enum_values


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"
    LIVE_TRADE_INVESTMENT = "live_trade_investment"
    PROFIT = "profit"
    PRINCIPAL_RETURN = "principal_return"
    BONUS = "bonus"
    REFERRAL_COMMISSION = "referral_commission"
    ADMIN_FUNDING = "admin_funding"
    ADMIN_DEDUCTION = "admin_deduction"
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionDirection(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(BaseModel):
    """
    거래 원장 테이블

    이 테이블은 다음 원칙을 따릅니다:
    1. 불변성(Immutable): 생성 후 수정 불가 (승인 대기 건의 status 전이만 외부에서 허용)
    2. 완전성(Complete): 모든 하위 잔액 변동이 기록됨
    3. 추적성(Traceable): balance_after 로 변동 직후 하위 잔액을 보존
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="transaction_type", values_callable=enum_values),
        nullable=False,
        index=True,
    )

    # amount 는 항상 0 이상, 부호는 direction 으로 표현
    direction: Mapped[TransactionDirection] = mapped_column(
        Enum(TransactionDirection, name="transaction_direction", values_callable=enum_values),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    balance_type: Mapped[BalanceType] = mapped_column(
        Enum(BalanceType, name="balance_type", values_callable=enum_values),
        nullable=False,
    )
    balance_after: Mapped[Decimal] = mapped_column(Money, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # 관련 포지션 ID (투자/라이브 트레이드)
    reference_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True, index=True)

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, name="transaction_status", values_callable=enum_values),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )
