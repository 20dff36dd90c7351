from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from brokerapi.models.position import PositionKind


class ProfitDistributionEntry(BaseModel):
    """수익 지급 기록"""

    id: int
    position_id: int
    user_id: int
    period_index: int
    period_at: datetime
    amount: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DistributionFailure(BaseModel):
    """지급 실패한 포지션"""

    position_id: int
    error: str


class DistributionRunRequest(BaseModel):
    """수익 지급 실행 요청 (관리자)"""

    kind: Optional[PositionKind] = Field(None, description="특정 종류만 처리 (없으면 전체)")


class DistributionRunResult(BaseModel):
    """수익 지급 실행 결과"""

    processed_count: int = Field(0, description="이번 실행에서 지급된 기간 수")
    total_amount: Decimal = Field(Decimal("0.00"), description="이번 실행에서 지급된 총 수익")
    skipped_count: int = Field(0, description="이미 지급되어 건너뛴 기간 수")
    completed_count: int = Field(0, description="만기로 완료 처리된 포지션 수")
    failed_count: int = Field(0, description="실패한 포지션 수")
    failures: List[DistributionFailure] = Field(default_factory=list)
    run_at: datetime = Field(..., description="실행 기준 시각")


class DistributionSummaryResponse(BaseModel):
    """수익 지급 요약 (관리자)"""

    total_active_positions: int
    total_invested: Decimal
    total_profits_distributed: Decimal
    profits_distributed_today: Decimal
