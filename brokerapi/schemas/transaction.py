from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from brokerapi.models.balance import BalanceType
from brokerapi.models.transaction import (
    TransactionDirection,
    TransactionStatus,
    TransactionType,
)


class TransactionEntry(BaseModel):
    """거래 원장 항목"""

    id: int = Field(..., description="거래 ID")
    user_id: int = Field(..., description="사용자 ID")
    type: TransactionType = Field(..., description="거래 유형")
    direction: TransactionDirection = Field(..., description="CREDIT / DEBIT")
    amount: Decimal = Field(..., description="실제 반영 금액 (0 이상)")
    balance_type: BalanceType = Field(..., description="영향받은 하위 잔액")
    balance_after: Decimal = Field(..., description="거래 후 하위 잔액")
    description: Optional[str] = Field(None, description="거래 설명")
    reference_id: Optional[int] = Field(None, description="관련 포지션 ID")
    status: TransactionStatus = Field(..., description="거래 상태")
    created_at: Optional[datetime] = Field(None, description="생성 시각")

    class Config:
        from_attributes = True


class TransactionHistoryResponse(BaseModel):
    """거래 내역 조회 응답"""

    entries: List[TransactionEntry] = Field(..., description="거래 목록 (최신순)")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")
