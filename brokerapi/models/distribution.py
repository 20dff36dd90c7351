from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from brokerapi.models.base import BaseModel, BigIntPK, Money


class ProfitDistribution(BaseModel):
    """
    수익 지급 기록 - 포지션 x 기간당 최대 1건

    (position_id, period_at) 유니크 제약이 멱등성 키 역할을 하여
    중복 실행/동시 실행 시에도 같은 기간의 수익이 두 번 지급되지 않습니다.
    """

    __tablename__ = "profit_distributions"
    __table_args__ = (
        UniqueConstraint("position_id", "period_at", name="uq_profit_distributions_position_period"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    position_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("positions.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    period_index: Mapped[int] = mapped_column(Integer, nullable=False)  # 1부터 시작
    # 기간 종료 시각을 지급 단위(시간/일)로 절삭한 값
    period_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
