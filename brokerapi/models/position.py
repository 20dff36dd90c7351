"""
투자 상품(Plan)과 포지션 데이터 모델

투자(일 단위 수익)와 라이브 트레이드(시간 단위 수익)는 같은 형태이므로
kind 컬럼으로 구분하는 단일 테이블로 관리합니다.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from brokerapi.models.base import BaseModel, BigIntPK, Money, enum_values


class PositionKind(str, enum.Enum):
    INVESTMENT = "investment"  # 일 단위 수익
    LIVE_TRADE = "live_trade"  # 시간 단위 수익


class PositionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DEACTIVATED = "deactivated"

    @property
    def is_terminal(self) -> bool:
        return self is not PositionStatus.ACTIVE


# 수익률 (기간당): 0.0250 = 2.5%
Rate = Numeric(8, 6)


class Plan(BaseModel):
    """관리자가 구성하는 상품 - 이 모듈에서는 읽기 전용 참조 데이터"""

    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    kind: Mapped[PositionKind] = mapped_column(
        Enum(PositionKind, name="position_kind", values_callable=enum_values),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    min_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    max_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    profit_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # 기간 수 (일 또는 시간)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Position(BaseModel):
    """
    사용자 포지션 (투자 / 라이브 트레이드)

    profit_rate, duration 은 개설 시점의 상품 값을 복사해 둡니다.
    (상품 수정이 진행 중인 포지션에 영향을 주지 않도록)
    """

    __tablename__ = "positions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    plan_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("plans.id"), nullable=False
    )
    kind: Mapped[PositionKind] = mapped_column(
        Enum(PositionKind, name="position_kind", values_callable=enum_values),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)  # 원금
    profit_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PositionStatus] = mapped_column(
        Enum(PositionStatus, name="position_status", values_callable=enum_values),
        nullable=False,
        default=PositionStatus.ACTIVE,
        index=True,
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    total_profit: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
