"""
거래 원장 리포지토리 - 추가 전용(append-only)

거래 레코드는 생성 이후 수정하지 않습니다. 유형 값은 코드에 정의된 닫힌 Enum 집합으로만 허용됩니다.
"""

import enum
from decimal import Decimal
from typing import Optional, Type, TypeVar, Union

from sqlalchemy import desc
from sqlalchemy.orm import Session

from brokerapi.core.exceptions import ValidationError
from brokerapi.models.balance import BalanceType
from brokerapi.models.transaction import (
    Transaction,
    TransactionDirection,
    TransactionStatus,
    TransactionType,
)
from brokerapi.repositories.base import BaseRepository
from brokerapi.schemas.transaction import TransactionEntry, TransactionHistoryResponse
from brokerapi.utils.money import to_money

E = TypeVar("E", bound=enum.Enum)


def coerce_enum(enum_class: Type[E], value: Union[E, str], field: str) -> E:
    """문자열/Enum 값을 닫힌 Enum 멤버로 변환, 알 수 없는 값이면 ValidationError"""
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError:
        allowed = [member.value for member in enum_class]
        raise ValidationError(
            f"Unrecognized {field}: {value!r}",
            details={"field": field, "value": str(value), "allowed": allowed},
        )


class TransactionRepository(BaseRepository[Transaction, TransactionEntry]):
    def __init__(self, db: Session):
        super().__init__(Transaction, TransactionEntry, db)

    def append_transaction(
        self,
        user_id: int,
        transaction_type: Union[TransactionType, str],
        direction: Union[TransactionDirection, str],
        amount: Decimal,
        balance_type: Union[BalanceType, str],
        balance_after: Decimal,
        description: Optional[str] = None,
        reference_id: Optional[int] = None,
        status: Union[TransactionStatus, str] = TransactionStatus.COMPLETED,
        commit: bool = True,
    ) -> TransactionEntry:
        """
        거래 레코드 추가

        Raises:
            ValidationError: type / direction / balance_type / status 가 허용 집합 밖이거나 amount 가 음수
        """
        transaction_type = coerce_enum(TransactionType, transaction_type, "type")
        direction = coerce_enum(TransactionDirection, direction, "direction")
        balance_type = coerce_enum(BalanceType, balance_type, "balance_type")
        status = coerce_enum(TransactionStatus, status, "status")

        amount = to_money(amount)
        if amount < 0:
            raise ValidationError(
                "Transaction amount must be non-negative; use direction for the sign",
                details={"amount": str(amount)},
            )

        instance = Transaction(
            user_id=user_id,
            type=transaction_type,
            direction=direction,
            amount=amount,
            balance_type=balance_type,
            balance_after=to_money(balance_after),
            description=description,
            reference_id=reference_id,
            status=status,
        )
        return self._to_schema(self._add(instance, commit=commit))

    def get_user_transactions(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        balance_type: Optional[BalanceType] = None,
    ) -> TransactionHistoryResponse:
        """사용자 거래 내역 조회 (최신순, 페이징)"""
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)
        if balance_type is not None:
            query = query.filter(Transaction.balance_type == balance_type)

        total_count = query.count()
        instances = (
            query.order_by(desc(Transaction.id)).limit(limit).offset(offset).all()
        )

        return TransactionHistoryResponse(
            entries=[self._to_schema(instance) for instance in instances],
            total_count=total_count,
            has_next=offset + limit < total_count,
        )
