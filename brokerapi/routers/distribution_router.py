"""
수익 지급 관리자 API

- POST /admin/distributions/run: 지급 대기 수익 처리 (크론 대신 수동 실행)
- GET /admin/distributions/summary: 지급 현황 요약
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from brokerapi.core.auth_middleware import require_service_token
from brokerapi.deps import get_profit_distribution_service
from brokerapi.schemas.distribution import (
    DistributionRunRequest,
    DistributionRunResult,
    DistributionSummaryResponse,
)
from brokerapi.services.profit_distribution_service import ProfitDistributionService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/distributions",
    tags=["admin-distributions"],
    dependencies=[Depends(require_service_token)],
)


@router.post("/run", response_model=DistributionRunResult)
def run_distribution(
    request: Optional[DistributionRunRequest] = None,
    service: ProfitDistributionService = Depends(get_profit_distribution_service),
) -> DistributionRunResult:
    """
    수익 지급 실행

    같은 기간은 한 번만 지급되므로 반복 실행해도 안전합니다.
    포지션별 실패는 failures 로 보고되고 나머지 포지션은 계속 처리됩니다.
    """
    kind = request.kind if request else None
    result = service.distribute_pending_profits(kind=kind)
    if result.failed_count:
        logger.warning(f"Manual distribution run finished with {result.failed_count} failures")
    return result


@router.get("/summary", response_model=DistributionSummaryResponse)
def get_summary(
    service: ProfitDistributionService = Depends(get_profit_distribution_service),
) -> DistributionSummaryResponse:
    return service.get_summary()
