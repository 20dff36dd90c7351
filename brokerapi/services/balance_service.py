from datetime import datetime, timezone
from typing import Optional, Union
import logging

from sqlalchemy.orm import Session

from brokerapi.config import Settings, settings as default_settings
from brokerapi.core.exceptions import InsufficientBalanceError, ValidationError
from brokerapi.database.session import unit_of_work
from brokerapi.models.balance import BalanceType
from brokerapi.models.transaction import TransactionDirection, TransactionType
from brokerapi.repositories.balance_repository import BalanceRepository
from brokerapi.repositories.transaction_repository import TransactionRepository, coerce_enum
from brokerapi.schemas.balance import (
    BalanceAdjustmentResponse,
    BalanceIntegrityResponse,
    BalanceRepairResponse,
    BalanceResponse,
)
from brokerapi.schemas.transaction import TransactionHistoryResponse
from brokerapi.utils.money import Amount, ZERO, to_money

logger = logging.getLogger(__name__)


class BalanceService:
    """
    하위 잔액을 변경할 수 있는 유일한 서비스

    모든 변경은 하나의 작업 단위 안에서:
    1. 잔액 행 잠금 (SELECT ... FOR UPDATE)
    2. 하위 잔액 계산 + 차감 정책 적용 (CLAMP: 0 하한 / REJECT: 거부)
    3. 하위 잔액과 total_balance 를 같은 UPDATE 로 기록
    4. 실제 반영된 변동량으로 거래 레코드 1건 추가
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.balance_repo = BalanceRepository(db)
        self.transaction_repo = TransactionRepository(db)

    def get_balance(self, user_id: int) -> BalanceResponse:
        """사용자 잔액 조회

        Raises:
            NotFoundError: 잔액 레코드 없음
        """
        return self.balance_repo.get_balance(user_id)

    def adjust(
        self,
        user_id: int,
        balance_type: Union[BalanceType, str],
        delta: Amount,
        description: str,
        transaction_type: Union[TransactionType, str],
        reference_id: Optional[int] = None,
        commit: bool = True,
    ) -> BalanceAdjustmentResponse:
        """
        하위 잔액 조정

        Args:
            user_id: 사용자 ID
            balance_type: profit | deposit | bonus | card | credit_score
            delta: 변동량 (양수: 증가, 음수: 차감), 0 은 허용하지 않음
            description: 거래 설명
            transaction_type: 거래 유형
            reference_id: 관련 포지션 ID
            commit: False 면 호출자의 작업 단위에 합류

        Returns:
            BalanceAdjustmentResponse: 조정 후 잔액, 기록된 거래, 실제 반영 변동량

        Raises:
            ValidationError: 알 수 없는 유형 또는 0/잘못된 금액
            NotFoundError: 잔액 레코드 없음
            InsufficientBalanceError: REJECT 정책에서 잔액 부족
            StorageError: 저장소 실패 (전체 롤백)
        """
        balance_type = coerce_enum(BalanceType, balance_type, "balance_type")
        transaction_type = coerce_enum(TransactionType, transaction_type, "type")
        try:
            requested = to_money(delta)
        except ValueError as e:
            raise ValidationError(str(e))
        if requested == ZERO:
            raise ValidationError("Adjustment delta must be non-zero")

        with unit_of_work(self.db, commit=commit):
            balance = self.balance_repo.get_model_or_raise(user_id, for_update=True)
            current = balance.get_sub_balance(balance_type)
            new_value = current + requested

            clamped = False
            if new_value < ZERO:
                if self.settings.BALANCE_DEDUCTION_POLICY == "REJECT":
                    raise InsufficientBalanceError(
                        f"Insufficient {balance_type.value} balance. Required: {-requested}, Available: {current}",
                        details={
                            "user_id": user_id,
                            "balance_type": balance_type.value,
                            "required": str(-requested),
                            "available": str(current),
                        },
                    )
                new_value = ZERO
                clamped = True

            realized = new_value - current
            self.balance_repo.write_sub_balance(balance, balance_type, new_value)

            transaction = self.transaction_repo.append_transaction(
                user_id=user_id,
                transaction_type=transaction_type,
                direction=(
                    TransactionDirection.CREDIT
                    if requested > 0
                    else TransactionDirection.DEBIT
                ),
                amount=abs(realized),
                balance_type=balance_type,
                balance_after=new_value,
                description=description,
                reference_id=reference_id,
                commit=False,
            )
            balance_snapshot = BalanceResponse.model_validate(balance)

        if clamped:
            logger.warning(
                f"Deduction clamped for user {user_id} ({balance_type.value}): requested {requested}, realized {realized}"
            )
        logger.info(
            f"Adjusted {balance_type.value} balance for user {user_id} by {realized} ({transaction_type.value})"
        )

        return BalanceAdjustmentResponse(
            balance=balance_snapshot,
            transaction=transaction,
            requested_delta=requested,
            realized_delta=to_money(realized),
            clamped=clamped,
        )

    def recalculate_total(self, user_id: int) -> BalanceResponse:
        """
        total_balance 재계산 (멱등, 거래 기록 없음)

        하위 잔액 합계와 어긋난 total 을 복구하는 유지보수 작업입니다.
        """
        with unit_of_work(self.db):
            balance = self.balance_repo.get_model_or_raise(user_id, for_update=True)
            previous = to_money(balance.total_balance or 0)
            self.balance_repo.recalculate_total(balance)
            result = BalanceResponse.model_validate(balance)

        if previous != result.total_balance:
            logger.warning(
                f"Repaired total balance drift for user {user_id}: {previous} -> {result.total_balance}"
            )
        return result

    def admin_adjust(
        self,
        user_id: int,
        balance_type: Union[BalanceType, str],
        amount: Amount,
        reason: str,
        admin_id: int,
    ) -> BalanceAdjustmentResponse:
        """관리자 자금 지급/차감 (양수: admin_funding, 음수: admin_deduction)"""
        try:
            signed = to_money(amount)
        except ValueError as e:
            raise ValidationError(str(e))

        transaction_type = (
            TransactionType.ADMIN_FUNDING if signed > 0 else TransactionType.ADMIN_DEDUCTION
        )
        logger.info(f"Admin {admin_id} adjusting user {user_id} by {signed}: {reason}")
        return self.adjust(
            user_id=user_id,
            balance_type=balance_type,
            delta=signed,
            description=f"Admin adjustment by {admin_id}: {reason}",
            transaction_type=transaction_type,
        )

    def get_transactions(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        balance_type: Optional[Union[BalanceType, str]] = None,
    ) -> TransactionHistoryResponse:
        """사용자 거래 내역 조회 (limit 상한: TRANSACTION_PAGE_MAX)"""
        limit = min(max(limit, 1), self.settings.TRANSACTION_PAGE_MAX)
        if balance_type is not None:
            balance_type = coerce_enum(BalanceType, balance_type, "balance_type")
        return self.transaction_repo.get_user_transactions(
            user_id=user_id, limit=limit, offset=max(offset, 0), balance_type=balance_type
        )

    def check_integrity(self) -> BalanceIntegrityResponse:
        """전체 사용자 total_balance 정합성 검증"""
        discrepancies = self.balance_repo.find_total_discrepancies()
        if discrepancies:
            logger.warning(f"Found {len(discrepancies)} users with total balance drift")
        return BalanceIntegrityResponse(
            status="MISMATCH" if discrepancies else "OK",
            checked_at=datetime.now(timezone.utc),
            discrepancy_count=len(discrepancies),
            discrepancies=discrepancies,
        )

    def repair_all_totals(self) -> BalanceRepairResponse:
        """어긋난 total_balance 를 단일 UPDATE 로 일괄 보정"""
        with unit_of_work(self.db):
            repaired = self.balance_repo.recalculate_all_totals()

        logger.info(f"Recalculated total balance for {repaired} users")
        return BalanceRepairResponse(
            repaired_count=repaired, repaired_at=datetime.now(timezone.utc)
        )
