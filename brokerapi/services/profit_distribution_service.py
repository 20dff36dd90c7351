from datetime import datetime
from typing import Optional, Union
import logging

from sqlalchemy.orm import Session

from brokerapi.config import Settings, settings as default_settings
from brokerapi.core.exceptions import DuplicatePeriodError
from brokerapi.database.session import unit_of_work
from brokerapi.models.balance import BalanceType
from brokerapi.models.position import PositionKind, PositionStatus
from brokerapi.models.transaction import TransactionType
from brokerapi.repositories.distribution_repository import DistributionRepository
from brokerapi.repositories.position_repository import PositionRepository
from brokerapi.repositories.transaction_repository import coerce_enum
from brokerapi.schemas.distribution import (
    DistributionFailure,
    DistributionRunResult,
    DistributionSummaryResponse,
)
from brokerapi.schemas.position import PositionResponse
from brokerapi.services.balance_service import BalanceService
from brokerapi.services.position_service import KIND_LABELS, PositionService
from brokerapi.utils.money import ZERO, period_profit, to_money
from brokerapi.utils.period_utils import (
    ensure_utc,
    maturity_time,
    period_at,
    period_length,
    periods_elapsed,
    utc_now,
)

logger = logging.getLogger(__name__)


class ProfitDistributionService:
    """
    수익 지급 엔진 (크론에서 주기적으로 호출)

    - 경과한 기간마다 원금 x 수익률 을 profit 잔액에 지급
    - (position_id, period_at) 유니크 제약으로 같은 기간은 한 번만 지급
    - 만기 도달 시 모든 기간 지급 후 포지션을 completed 로 종료 (원금 반환)
    - 한 포지션의 실패는 다른 포지션 처리에 영향을 주지 않음
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.balance_service = BalanceService(db, settings=self.settings)
        self.position_service = PositionService(db, settings=self.settings)
        self.position_repo = PositionRepository(db)
        self.distribution_repo = DistributionRepository(db)

    def distribute_pending_profits(
        self,
        now: Optional[datetime] = None,
        kind: Optional[Union[PositionKind, str]] = None,
    ) -> DistributionRunResult:
        """
        지급 대기 중인 모든 기간 처리

        Args:
            now: 기준 시각 (기본: 현재 UTC)
            kind: 특정 포지션 종류만 처리

        Returns:
            DistributionRunResult: 이번 실행의 지급 건수/금액, 건너뜀/완료/실패 집계
        """
        now = ensure_utc(now) if now else utc_now()
        if kind is not None:
            kind = coerce_enum(PositionKind, kind, "kind")

        positions = [
            PositionResponse.model_validate(p)
            for p in self.position_repo.get_active_positions(kind)
        ]
        result = DistributionRunResult(run_at=now)
        logger.info(f"Profit distribution started at {now.isoformat()} for {len(positions)} active positions")

        for position in positions:
            try:
                self._distribute_position(position, now, result)

                if self._complete_if_matured(position, now):
                    result.completed_count += 1
            except Exception as e:
                # 중단된 트랜잭션(PostgreSQL)이 다음 포지션으로 넘어가지 않도록
                self.db.rollback()
                logger.error(f"Profit distribution failed for position {position.id}: {str(e)}")
                result.failed_count += 1
                result.failures.append(
                    DistributionFailure(position_id=position.id, error=str(e))
                )

        logger.info(
            f"Profit distribution finished: processed={result.processed_count}, "
            f"amount={result.total_amount}, skipped={result.skipped_count}, "
            f"completed={result.completed_count}, failed={result.failed_count}"
        )
        return result

    def _distribute_position(
        self, position: PositionResponse, now: datetime, result: DistributionRunResult
    ) -> int:
        """
        포지션 1건의 미지급 기간 처리

        기간마다 커밋되므로 지급 건수/금액은 커밋 직후 result 에 누적합니다.
        이후 기간에서 예외가 나도 이미 지급된 기간은 집계에 남습니다.

        Returns:
            int: 이번 호출에서 지급된 기간 수
        """
        length = period_length(position.kind, self.settings)
        start_time = ensure_utc(position.start_time)
        elapsed = min(periods_elapsed(start_time, now, length), position.duration)
        if elapsed == 0:
            return 0

        recorded = self.distribution_repo.get_recorded_periods(position.id)
        pending = [
            (index, period_at(start_time, index, length))
            for index in range(1, elapsed + 1)
        ]
        pending = [(index, at) for index, at in pending if at not in recorded]
        if not pending:
            return 0

        profit = period_profit(position.amount, position.profit_rate)
        processed = 0

        for index, at in pending:
            try:
                with unit_of_work(self.db):
                    locked = self.position_repo.get_model_or_raise(position.id, for_update=True)
                    if locked.status != PositionStatus.ACTIVE:
                        # 다른 경로로 종료된 포지션
                        logger.info(f"Position {position.id} is {locked.status.value}, stopping distribution")
                        break

                    self.distribution_repo.record_distribution(
                        position_id=position.id,
                        user_id=position.user_id,
                        period_index=index,
                        period_at=at,
                        amount=profit,
                    )
                    if profit > ZERO:
                        self.balance_service.adjust(
                            user_id=position.user_id,
                            balance_type=BalanceType.PROFIT,
                            delta=profit,
                            description=(
                                f"{KIND_LABELS[position.kind]} profit - position #{position.id} "
                                f"period {index}/{position.duration}"
                            ),
                            transaction_type=TransactionType.PROFIT,
                            reference_id=position.id,
                            commit=False,
                        )
                        self.position_repo.add_profit(locked, profit)
            except DuplicatePeriodError:
                logger.info(f"Period {index} of position {position.id} already distributed, skipping")
                result.skipped_count += 1
                continue

            processed += 1
            result.processed_count += 1
            result.total_amount = to_money(result.total_amount + profit)

        if processed:
            logger.info(f"Distributed {to_money(profit * processed)} over {processed} periods for position {position.id}")
        return processed

    def _complete_if_matured(self, position: PositionResponse, now: datetime) -> bool:
        """만기 도달 + 전 기간 지급 완료 시 completed 로 종료"""
        length = period_length(position.kind, self.settings)
        if now < maturity_time(position.start_time, position.duration, length):
            return False

        distributed = self.distribution_repo.count_for_position(position.id)
        if distributed < position.duration:
            logger.warning(
                f"Position {position.id} matured with {distributed}/{position.duration} periods distributed, not completing"
            )
            return False

        closed = self.position_service.close_position(
            position.id, PositionStatus.COMPLETED, now=now
        )
        return closed.changed

    def get_summary(self, now: Optional[datetime] = None) -> DistributionSummaryResponse:
        """활성 포지션/원금, 누적 지급 수익, 당일 지급 수익"""
        now = ensure_utc(now) if now else utc_now()
        active_count, invested = self.position_repo.get_active_totals()
        return DistributionSummaryResponse(
            total_active_positions=active_count,
            total_invested=invested,
            total_profits_distributed=self.distribution_repo.get_total_distributed(),
            profits_distributed_today=self.distribution_repo.get_distributed_on(now.date()),
        )
