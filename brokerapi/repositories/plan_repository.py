from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from brokerapi.core.exceptions import NotFoundError, ValidationError
from brokerapi.models.position import Plan, PositionKind
from brokerapi.repositories.base import BaseRepository
from brokerapi.schemas.position import PlanResponse
from brokerapi.utils.money import to_money


class PlanRepository(BaseRepository[Plan, PlanResponse]):
    """상품 참조 데이터 - 포지션 개설 시 조회만 수행"""

    def __init__(self, db: Session):
        super().__init__(Plan, PlanResponse, db)

    def get_plan(self, plan_id: int) -> PlanResponse:
        plan = self.get_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found", details={"plan_id": plan_id})
        return plan

    def create_plan(
        self,
        kind: PositionKind,
        name: str,
        min_amount: Decimal,
        profit_rate: Decimal,
        duration: int,
        max_amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        is_active: bool = True,
        commit: bool = True,
    ) -> PlanResponse:
        """시드/관리 스크립트용"""
        if min_amount <= 0 or profit_rate <= 0 or duration <= 0:
            raise ValidationError("min_amount, profit_rate and duration must be positive")
        if max_amount is not None and max_amount < min_amount:
            raise ValidationError("max_amount must be >= min_amount")

        return self.create(
            commit=commit,
            kind=kind,
            name=name,
            description=description,
            min_amount=to_money(min_amount),
            max_amount=to_money(max_amount) if max_amount is not None else None,
            profit_rate=Decimal(str(profit_rate)),
            duration=duration,
            is_active=is_active,
        )
