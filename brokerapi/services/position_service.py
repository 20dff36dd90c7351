from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union
import logging

from sqlalchemy.orm import Session

from brokerapi.config import Settings, settings as default_settings
from brokerapi.core.exceptions import InsufficientBalanceError, ValidationError
from brokerapi.database.session import unit_of_work
from brokerapi.models.balance import BalanceType
from brokerapi.models.position import PositionKind, PositionStatus
from brokerapi.models.transaction import TransactionType
from brokerapi.repositories.balance_repository import BalanceRepository
from brokerapi.repositories.distribution_repository import DistributionRepository
from brokerapi.repositories.plan_repository import PlanRepository
from brokerapi.repositories.position_repository import PositionRepository
from brokerapi.repositories.transaction_repository import coerce_enum
from brokerapi.schemas.position import (
    PositionCloseResponse,
    PositionResponse,
    PositionStatusResponse,
)
from brokerapi.services.balance_service import BalanceService
from brokerapi.utils.money import Amount, ZERO, to_money
from brokerapi.utils.period_utils import (
    ensure_utc,
    maturity_time,
    period_length,
    periods_elapsed,
    utc_now,
)

logger = logging.getLogger(__name__)

OPENING_TRANSACTION_TYPES = {
    PositionKind.INVESTMENT: TransactionType.INVESTMENT,
    PositionKind.LIVE_TRADE: TransactionType.LIVE_TRADE_INVESTMENT,
}

KIND_LABELS = {
    PositionKind.INVESTMENT: "Investment",
    PositionKind.LIVE_TRADE: "Live trade",
}


class PositionService:
    """
    포지션 생명주기 관리 (투자 / 라이브 트레이드)

    상태 전이: active -> completed | cancelled | deactivated (종료 상태에서는 전이 없음)
    원금은 개설 시 deposit 에서 차감되고 종료 시 deposit 으로 반환됩니다.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.balance_service = BalanceService(db, settings=self.settings)
        self.balance_repo = BalanceRepository(db)
        self.plan_repo = PlanRepository(db)
        self.position_repo = PositionRepository(db)
        self.distribution_repo = DistributionRepository(db)

    def open_position(
        self,
        user_id: int,
        plan_id: int,
        amount: Amount,
        now: Optional[datetime] = None,
    ) -> PositionResponse:
        """
        포지션 개설

        검증: 상품 활성 여부, min/max 금액, deposit 잔액
        잔액 확인과 차감, 포지션 생성은 잔액 행 잠금 하에서 하나의 트랜잭션으로 처리되어
        동시 개설 요청 간 경쟁 조건이 발생하지 않습니다.

        Raises:
            ValidationError: 금액이 0 이하, 비활성 상품, min/max 범위 밖
            NotFoundError: 상품 또는 잔액 레코드 없음
            InsufficientBalanceError: deposit 잔액 부족 (변경 없음)
        """
        try:
            amount = to_money(amount)
        except ValueError as e:
            raise ValidationError(str(e))
        if amount <= ZERO:
            raise ValidationError("Position amount must be positive", details={"amount": str(amount)})

        plan = self.plan_repo.get_plan(plan_id)
        self._validate_plan_limits(plan, amount)

        start_time = ensure_utc(now) if now else utc_now()

        with unit_of_work(self.db):
            balance = self.balance_repo.get_model_or_raise(user_id, for_update=True)
            available = balance.get_sub_balance(BalanceType.DEPOSIT)
            if available < amount:
                raise InsufficientBalanceError(
                    f"Insufficient balance. Required: {amount}, Available: {available}",
                    details={"user_id": user_id, "required": str(amount), "available": str(available)},
                )

            position = self.position_repo.create_position(
                user_id=user_id,
                plan=plan,
                amount=amount,
                start_time=start_time,
                commit=False,
            )
            self.balance_service.adjust(
                user_id=user_id,
                balance_type=BalanceType.DEPOSIT,
                delta=-amount,
                description=f"{KIND_LABELS[plan.kind]} in {plan.name} (position #{position.id})",
                transaction_type=OPENING_TRANSACTION_TYPES[plan.kind],
                reference_id=position.id,
                commit=False,
            )
            result = PositionResponse.model_validate(position)

        logger.info(
            f"Opened {plan.kind.value} position {result.id} for user {user_id}: {amount} on plan {plan_id}"
        )
        return result

    def _validate_plan_limits(self, plan, amount: Decimal) -> None:
        details = {
            "plan_id": plan.id,
            "amount": str(amount),
            "min_amount": str(plan.min_amount),
            "max_amount": str(plan.max_amount) if plan.max_amount is not None else None,
        }
        if not plan.is_active:
            raise ValidationError(f"Plan {plan.id} is not active", details=details)
        if amount < plan.min_amount:
            raise ValidationError(
                f"Amount {amount} is below the plan minimum {plan.min_amount}", details=details
            )
        if plan.max_amount is not None and amount > plan.max_amount:
            raise ValidationError(
                f"Amount {amount} exceeds the plan maximum {plan.max_amount}", details=details
            )

    def close_position(
        self,
        position_id: int,
        outcome: Union[PositionStatus, str],
        now: Optional[datetime] = None,
        commit: bool = True,
    ) -> PositionCloseResponse:
        """
        포지션 종료 - 원금을 deposit 으로 반환

        이미 종료된 포지션이면 아무것도 하지 않습니다 (재시도 시 이중 반환 방지).
        지급되지 않은 수익은 여기서 정산하지 않으며, 만기 완료는 수익 지급 엔진이
        모든 기간을 지급한 뒤 호출합니다.

        Raises:
            ValidationError: outcome 이 종료 상태가 아님
            NotFoundError: 포지션 없음
        """
        outcome = coerce_enum(PositionStatus, outcome, "outcome")
        if not outcome.is_terminal:
            raise ValidationError(
                "Close outcome must be completed, cancelled or deactivated",
                details={"outcome": outcome.value},
            )

        end_time = ensure_utc(now) if now else utc_now()

        with unit_of_work(self.db, commit=commit):
            position = self.position_repo.get_model_or_raise(position_id, for_update=True)

            if position.status.is_terminal:
                logger.info(
                    f"Position {position_id} already {position.status.value}, close is a no-op"
                )
                return PositionCloseResponse(
                    position=PositionResponse.model_validate(position),
                    changed=False,
                    principal_returned=ZERO,
                )

            principal = to_money(position.amount)
            self.balance_service.adjust(
                user_id=position.user_id,
                balance_type=BalanceType.DEPOSIT,
                delta=principal,
                description=f"{KIND_LABELS[position.kind]} #{position.id} {outcome.value} - principal returned",
                transaction_type=TransactionType.PRINCIPAL_RETURN,
                reference_id=position.id,
                commit=False,
            )
            self.position_repo.mark_closed(position, outcome, end_time)
            result = PositionCloseResponse(
                position=PositionResponse.model_validate(position),
                changed=True,
                principal_returned=principal,
            )

        logger.info(
            f"Closed position {position_id} as {outcome.value}, returned {result.principal_returned} to user {result.position.user_id}"
        )
        return result

    def get_position(self, position_id: int) -> PositionResponse:
        return self.position_repo.get_position(position_id)

    def list_user_positions(
        self, user_id: int, status: Optional[Union[PositionStatus, str]] = None
    ) -> List[PositionResponse]:
        if status is not None:
            status = coerce_enum(PositionStatus, status, "status")
        return self.position_repo.get_user_positions(user_id, status=status)

    def get_position_status(
        self, position_id: int, now: Optional[datetime] = None
    ) -> PositionStatusResponse:
        """포지션 진행 상태 (경과/잔여 기간, 진행률, 다음 지급 예정 시각)"""
        position = self.position_repo.get_position(position_id)
        now = ensure_utc(now) if now else utc_now()

        length = period_length(position.kind, self.settings)
        start_time = ensure_utc(position.start_time)
        maturity = maturity_time(start_time, position.duration, length)

        # 종료된 포지션은 종료 시각 기준으로 진행률 고정
        reference = ensure_utc(position.end_time) if position.end_time else now
        elapsed = min(periods_elapsed(start_time, reference, length), position.duration)
        remaining = position.duration - elapsed

        next_profit_due = None
        if position.status == PositionStatus.ACTIVE and elapsed < position.duration:
            next_profit_due = start_time + length * (elapsed + 1)

        return PositionStatusResponse(
            position=position,
            periods_elapsed=elapsed,
            periods_remaining=remaining,
            periods_distributed=self.distribution_repo.count_for_position(position_id),
            progress_percentage=round(elapsed / position.duration * 100, 2),
            is_expired=now >= maturity,
            maturity_time=maturity,
            next_profit_due=next_profit_due,
        )
