from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from brokerapi.models.balance import BalanceType
from brokerapi.schemas.transaction import TransactionEntry


class BalanceResponse(BaseModel):
    """사용자 잔액 응답"""

    user_id: int = Field(..., description="사용자 ID")
    profit_balance: Decimal = Field(..., description="수익 잔액")
    deposit_balance: Decimal = Field(..., description="입금(가용) 잔액")
    bonus_balance: Decimal = Field(..., description="보너스 잔액")
    card_balance: Decimal = Field(..., description="카드 잔액")
    credit_score_balance: Decimal = Field(..., description="신용 점수 (합계 제외)")
    total_balance: Decimal = Field(..., description="profit + deposit + bonus + card")
    updated_at: Optional[datetime] = Field(None, description="최종 갱신 시각")

    class Config:
        from_attributes = True


class AdminFundAdjustmentRequest(BaseModel):
    """관리자 자금 조정 요청"""

    balance_type: BalanceType = Field(BalanceType.DEPOSIT, description="조정할 하위 잔액")
    amount: Decimal = Field(..., description="조정 금액 (양수: 지급, 음수: 차감)")
    reason: str = Field(..., min_length=1, max_length=255, description="조정 사유")
    admin_id: int = Field(..., gt=0, description="처리 관리자 ID")


class BalanceAdjustmentResponse(BaseModel):
    """잔액 조정 결과"""

    balance: BalanceResponse = Field(..., description="조정 후 잔액")
    transaction: TransactionEntry = Field(..., description="기록된 거래")
    requested_delta: Decimal = Field(..., description="요청 변동량")
    realized_delta: Decimal = Field(..., description="실제 반영 변동량 (0 하한 적용 후)")
    clamped: bool = Field(..., description="0 하한으로 요청보다 적게 차감되었는지 여부")


class BalanceDiscrepancy(BaseModel):
    """total_balance 불일치 항목"""

    user_id: int
    stored_total: Decimal
    calculated_total: Decimal
    discrepancy: Decimal


class BalanceIntegrityResponse(BaseModel):
    """잔액 정합성 검증 결과"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    checked_at: datetime = Field(..., description="검증 시각")
    discrepancy_count: int = Field(..., description="불일치 사용자 수")
    discrepancies: List[BalanceDiscrepancy] = Field(default_factory=list)


class BalanceRepairResponse(BaseModel):
    """total_balance 일괄 보정 결과"""

    repaired_count: int = Field(..., description="보정된 사용자 수")
    repaired_at: datetime = Field(..., description="보정 시각")
