"""금액 유틸리티 - 모든 금액은 소수점 2자리 Decimal 로 다룹니다."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, float, str]


def to_money(value: Amount) -> Decimal:
    """
    금액을 소수점 2자리 Decimal 로 정규화 (반올림: ROUND_HALF_UP)

    float 는 str 변환 후 처리하여 2진 부동소수 오차를 피합니다.

    Raises:
        ValueError: 숫자로 해석할 수 없는 값
    """
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid money amount: {value!r}") from e


def period_profit(principal: Amount, rate: Amount) -> Decimal:
    """기간당 수익 = 원금 x 기간 수익률"""
    return to_money(Decimal(str(principal)) * Decimal(str(rate)))
