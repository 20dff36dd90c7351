from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from brokerapi.core.exceptions import NotFoundError
from brokerapi.models.position import Position, PositionKind, PositionStatus
from brokerapi.repositories.base import BaseRepository
from brokerapi.schemas.position import PlanResponse, PositionResponse
from brokerapi.utils.money import ZERO, to_money


class PositionRepository(BaseRepository[Position, PositionResponse]):
    def __init__(self, db: Session):
        super().__init__(Position, PositionResponse, db)

    def get_model_or_raise(self, position_id: int, for_update: bool = False) -> Position:
        position = self._get_model(position_id, for_update=for_update)
        if position is None:
            raise NotFoundError(
                f"Position {position_id} not found", details={"position_id": position_id}
            )
        return position

    def get_position(self, position_id: int) -> PositionResponse:
        return self._to_schema(self.get_model_or_raise(position_id))

    def create_position(
        self,
        user_id: int,
        plan: PlanResponse,
        amount: Decimal,
        start_time: datetime,
        commit: bool = True,
    ) -> Position:
        """상품 수익률/기간을 복사하여 active 포지션 생성"""
        instance = Position(
            user_id=user_id,
            plan_id=plan.id,
            kind=plan.kind,
            amount=to_money(amount),
            profit_rate=plan.profit_rate,
            duration=plan.duration,
            status=PositionStatus.ACTIVE,
            start_time=start_time,
            end_time=None,
            total_profit=ZERO,
        )
        return self._add(instance, commit=commit)

    def get_active_positions(self, kind: Optional[PositionKind] = None) -> List[Position]:
        """지급 대상 active 포지션 (시작 시각 순)"""
        query = self.db.query(Position).filter(Position.status == PositionStatus.ACTIVE)
        if kind is not None:
            query = query.filter(Position.kind == kind)
        return query.order_by(Position.start_time, Position.id).all()

    def get_user_positions(
        self, user_id: int, status: Optional[PositionStatus] = None
    ) -> List[PositionResponse]:
        query = self.db.query(Position).filter(Position.user_id == user_id)
        if status is not None:
            query = query.filter(Position.status == status)
        return [self._to_schema(p) for p in query.order_by(Position.id.desc()).all()]

    def mark_closed(
        self, position: Position, status: PositionStatus, end_time: datetime
    ) -> Position:
        """종료 상태 기록 (flush 까지만)"""
        position.status = status
        position.end_time = end_time
        self.db.flush()
        return position

    def add_profit(self, position: Position, amount: Decimal) -> Position:
        """누적 수익 증가 (flush 까지만)"""
        position.total_profit = to_money(Decimal(position.total_profit or 0) + amount)
        self.db.flush()
        return position

    def get_active_totals(self) -> tuple[int, Decimal]:
        """(active 포지션 수, active 원금 합계)"""
        count, invested = (
            self.db.query(func.count(Position.id), func.coalesce(func.sum(Position.amount), 0))
            .filter(Position.status == PositionStatus.ACTIVE)
            .one()
        )
        return int(count or 0), to_money(invested or 0)
