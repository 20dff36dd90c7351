"""
수익 지급 기록 리포지토리

(position_id, period_at) 유니크 제약이 멱등성을 보장합니다.
동일 기간 기록 시도는 DuplicatePeriodError 로 변환되며, 호출자는 이를 "이미 처리됨"으로 간주합니다.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Set

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brokerapi.core.exceptions import DuplicatePeriodError
from brokerapi.models.distribution import ProfitDistribution
from brokerapi.repositories.base import BaseRepository
from brokerapi.schemas.distribution import ProfitDistributionEntry
from brokerapi.utils.money import to_money
from brokerapi.utils.period_utils import ensure_utc

UNIQUE_CONSTRAINT_MARKERS = (
    "uq_profit_distributions_position_period",  # PostgreSQL
    "UNIQUE constraint failed: profit_distributions",  # SQLite
)


def _is_duplicate_period(error: IntegrityError) -> bool:
    message = str(error.orig) if error.orig is not None else str(error)
    return any(marker in message for marker in UNIQUE_CONSTRAINT_MARKERS)


class DistributionRepository(BaseRepository[ProfitDistribution, ProfitDistributionEntry]):
    def __init__(self, db: Session):
        super().__init__(ProfitDistribution, ProfitDistributionEntry, db)

    def record_distribution(
        self,
        position_id: int,
        user_id: int,
        period_index: int,
        period_at: datetime,
        amount: Decimal,
    ) -> ProfitDistributionEntry:
        """
        지급 기록 추가 (flush 까지만, 커밋은 호출자의 작업 단위에서)

        Raises:
            DuplicatePeriodError: 같은 (포지션, 기간) 기록이 이미 존재
                세션은 롤백이 필요한 상태가 되므로 호출자가 작업 단위를 롤백해야 함
        """
        instance = ProfitDistribution(
            position_id=position_id,
            user_id=user_id,
            period_index=period_index,
            period_at=period_at,
            amount=to_money(amount),
        )
        self.db.add(instance)
        try:
            self.db.flush()
        except IntegrityError as e:
            if _is_duplicate_period(e):
                raise DuplicatePeriodError(position_id, period_index) from e
            raise
        return self._to_schema(instance)

    def get_recorded_periods(self, position_id: int) -> Set[datetime]:
        """이미 지급된 기간의 period_at 집합 (UTC aware 로 정규화)"""
        rows = (
            self.db.query(ProfitDistribution.period_at)
            .filter(ProfitDistribution.position_id == position_id)
            .all()
        )
        return {ensure_utc(row[0]) for row in rows}

    def count_for_position(self, position_id: int) -> int:
        return self.count(filters={"position_id": position_id})

    def get_total_distributed(self) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(ProfitDistribution.amount), 0)).scalar()
        return to_money(total or 0)

    def get_distributed_on(self, day: date) -> Decimal:
        """특정일(UTC)에 지급된 수익 합계"""
        total = (
            self.db.query(func.coalesce(func.sum(ProfitDistribution.amount), 0))
            .filter(func.date(ProfitDistribution.created_at) == day)
            .scalar()
        )
        return to_money(total or 0)
