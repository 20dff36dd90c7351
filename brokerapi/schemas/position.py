from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from brokerapi.models.position import PositionKind, PositionStatus


class PlanResponse(BaseModel):
    """투자 상품"""

    id: int
    kind: PositionKind
    name: str
    description: Optional[str] = None
    min_amount: Decimal
    max_amount: Optional[Decimal] = None
    profit_rate: Decimal
    duration: int
    is_active: bool

    class Config:
        from_attributes = True


class PositionResponse(BaseModel):
    """포지션 (투자 / 라이브 트레이드)"""

    id: int = Field(..., description="포지션 ID")
    user_id: int = Field(..., description="사용자 ID")
    plan_id: int = Field(..., description="상품 ID")
    kind: PositionKind = Field(..., description="investment | live_trade")
    amount: Decimal = Field(..., description="원금")
    profit_rate: Decimal = Field(..., description="기간당 수익률")
    duration: int = Field(..., description="기간 수")
    status: PositionStatus = Field(..., description="포지션 상태")
    start_time: datetime = Field(..., description="시작 시각")
    end_time: Optional[datetime] = Field(None, description="종료 시각")
    total_profit: Decimal = Field(..., description="누적 지급 수익")

    class Config:
        from_attributes = True


class PositionOpenRequest(BaseModel):
    """포지션 개설 요청"""

    user_id: int = Field(..., gt=0, description="사용자 ID")
    plan_id: int = Field(..., gt=0, description="상품 ID")
    amount: Decimal = Field(..., gt=0, description="투자 금액")


class PositionCloseRequest(BaseModel):
    """포지션 종료 요청"""

    outcome: PositionStatus = Field(
        PositionStatus.CANCELLED, description="completed | cancelled | deactivated"
    )


class PositionCloseResponse(BaseModel):
    """포지션 종료 결과"""

    position: PositionResponse
    changed: bool = Field(..., description="False 면 이미 종료된 포지션 (no-op)")
    principal_returned: Decimal = Field(..., description="deposit 으로 반환된 원금")


class PositionStatusResponse(BaseModel):
    """포지션 진행 상태"""

    position: PositionResponse
    periods_elapsed: int = Field(..., description="경과 기간 수 (duration 상한)")
    periods_remaining: int = Field(..., description="남은 기간 수")
    periods_distributed: int = Field(..., description="수익 지급 완료 기간 수")
    progress_percentage: float = Field(..., description="진행률 (%)")
    is_expired: bool = Field(..., description="만기 도달 여부")
    maturity_time: datetime = Field(..., description="만기 시각")
    next_profit_due: Optional[datetime] = Field(None, description="다음 수익 지급 예정 시각")
