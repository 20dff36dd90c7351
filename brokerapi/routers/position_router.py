"""
포지션 API 라우터 (투자 / 라이브 트레이드)

- POST /positions: 포지션 개설 (deposit 에서 원금 차감)
- POST /positions/{position_id}/close: 포지션 종료 (원금 반환)
- GET /positions/{position_id}/status: 진행 상태
- GET /positions/user/{user_id}: 사용자 포지션 목록
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from brokerapi.core.auth_middleware import require_service_token
from brokerapi.deps import get_position_service
from brokerapi.models.position import PositionStatus
from brokerapi.schemas.position import (
    PositionCloseRequest,
    PositionCloseResponse,
    PositionOpenRequest,
    PositionResponse,
    PositionStatusResponse,
)
from brokerapi.services.position_service import PositionService

router = APIRouter(
    prefix="/positions",
    tags=["positions"],
    dependencies=[Depends(require_service_token)],
)


@router.post("", response_model=PositionResponse, status_code=status.HTTP_201_CREATED)
def open_position(
    request: PositionOpenRequest,
    service: PositionService = Depends(get_position_service),
) -> PositionResponse:
    """
    포지션 개설

    HTTP Status:
        201: 개설 완료
        400: deposit 잔액 부족
        404: 상품 또는 잔액 레코드 없음
        422: 비활성 상품 / 금액 범위 밖
    """
    return service.open_position(request.user_id, request.plan_id, request.amount)


@router.post("/{position_id}/close", response_model=PositionCloseResponse)
def close_position(
    request: PositionCloseRequest,
    position_id: int = Path(..., gt=0, description="포지션 ID"),
    service: PositionService = Depends(get_position_service),
) -> PositionCloseResponse:
    """포지션 종료 - 이미 종료된 포지션이면 changed=False"""
    return service.close_position(position_id, request.outcome)


@router.get("/{position_id}/status", response_model=PositionStatusResponse)
def get_position_status(
    position_id: int = Path(..., gt=0, description="포지션 ID"),
    service: PositionService = Depends(get_position_service),
) -> PositionStatusResponse:
    return service.get_position_status(position_id)


@router.get("/user/{user_id}", response_model=List[PositionResponse])
def list_user_positions(
    user_id: int = Path(..., gt=0, description="사용자 ID"),
    status_filter: Optional[PositionStatus] = Query(None, alias="status"),
    service: PositionService = Depends(get_position_service),
) -> List[PositionResponse]:
    return service.list_user_positions(user_id, status=status_filter)
