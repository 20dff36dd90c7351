"""
잔액 API 라우터

조회 엔드포인트:
- GET /balances/{user_id}: 사용자 잔액 조회
- GET /balances/{user_id}/transactions: 거래 내역 (최신순, 페이지)

관리자 엔드포인트:
- POST /admin/balances/{user_id}/adjust: 자금 지급/차감
- POST /admin/balances/{user_id}/recalculate: total_balance 재계산
- GET /admin/balances/integrity: total_balance 정합성 검증
- POST /admin/balances/integrity/repair: total_balance 일괄 보정

인증: 내부 서비스 토큰 (Authorization: Bearer <AUTH_TOKEN>)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from brokerapi.core.auth_middleware import require_service_token
from brokerapi.deps import get_balance_service
from brokerapi.models.balance import BalanceType
from brokerapi.schemas.balance import (
    AdminFundAdjustmentRequest,
    BalanceAdjustmentResponse,
    BalanceIntegrityResponse,
    BalanceRepairResponse,
    BalanceResponse,
)
from brokerapi.schemas.transaction import TransactionHistoryResponse
from brokerapi.services.balance_service import BalanceService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/balances",
    tags=["balances"],
    dependencies=[Depends(require_service_token)],
)
admin_router = APIRouter(
    prefix="/admin/balances",
    tags=["admin-balances"],
    dependencies=[Depends(require_service_token)],
)


@router.get("/{user_id}", response_model=BalanceResponse)
def get_balance(
    user_id: int = Path(..., gt=0, description="사용자 ID"),
    service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    """
    사용자 잔액 조회

    HTTP Status:
        200: 성공
        404: 잔액 레코드 없음
    """
    return service.get_balance(user_id)


@router.get("/{user_id}/transactions", response_model=TransactionHistoryResponse)
def get_transactions(
    user_id: int = Path(..., gt=0, description="사용자 ID"),
    limit: int = Query(50, ge=1, description="조회할 항목 수 (상한 TRANSACTION_PAGE_MAX)"),
    offset: int = Query(0, ge=0, description="건너뛸 항목 수"),
    balance_type: Optional[BalanceType] = Query(None, description="하위 잔액 필터"),
    service: BalanceService = Depends(get_balance_service),
) -> TransactionHistoryResponse:
    """거래 내역 조회 - 최신순"""
    return service.get_transactions(
        user_id, limit=limit, offset=offset, balance_type=balance_type
    )


# ==================== 관리자 API ====================


# 정적 경로를 /{user_id} 경로보다 먼저 등록
@admin_router.get("/integrity", response_model=BalanceIntegrityResponse)
def check_integrity(
    service: BalanceService = Depends(get_balance_service),
) -> BalanceIntegrityResponse:
    """전체 사용자 total_balance 정합성 검증 (profit + deposit + bonus + card)"""
    return service.check_integrity()


@admin_router.post("/integrity/repair", response_model=BalanceRepairResponse)
def repair_totals(
    service: BalanceService = Depends(get_balance_service),
) -> BalanceRepairResponse:
    """어긋난 total_balance 일괄 보정"""
    return service.repair_all_totals()


@admin_router.post("/{user_id}/adjust", response_model=BalanceAdjustmentResponse)
def admin_adjust(
    request: AdminFundAdjustmentRequest,
    user_id: int = Path(..., gt=0, description="대상 사용자 ID"),
    service: BalanceService = Depends(get_balance_service),
) -> BalanceAdjustmentResponse:
    """
    관리자 자금 조정 - 양수는 지급(admin_funding), 음수는 차감(admin_deduction)

    HTTP Status:
        200: 성공 (clamped=True 면 0 하한으로 일부만 차감)
        400: 잔액 부족 (REJECT 정책)
        404: 잔액 레코드 없음
        422: 금액 0 또는 잘못된 입력
    """
    logger.info(
        f"Admin {request.admin_id} requested {request.balance_type.value} adjustment of {request.amount} for user {user_id}"
    )
    return service.admin_adjust(
        user_id=user_id,
        balance_type=request.balance_type,
        amount=request.amount,
        reason=request.reason,
        admin_id=request.admin_id,
    )


@admin_router.post("/{user_id}/recalculate", response_model=BalanceResponse)
def recalculate_total(
    user_id: int = Path(..., gt=0, description="대상 사용자 ID"),
    service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    """total_balance 재계산 (멱등)"""
    return service.recalculate_total(user_id)
