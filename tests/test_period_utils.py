from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from brokerapi.config import Settings
from brokerapi.models.position import PositionKind
from brokerapi.utils.money import period_profit, to_money
from brokerapi.utils.period_utils import (
    ensure_utc,
    maturity_time,
    period_at,
    period_length,
    periods_elapsed,
)

DAY = timedelta(hours=24)
HOUR = timedelta(hours=1)
START = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)


class TestPeriodsElapsed:
    @pytest.mark.parametrize(
        "offset, expected",
        [
            (timedelta(0), 0),
            (timedelta(hours=23, minutes=59), 0),
            (DAY, 1),
            (DAY * 2 + timedelta(hours=5), 2),
            (-DAY, 0),  # 시작 전
        ],
    )
    def test_daily(self, offset, expected):
        assert periods_elapsed(START, START + offset, DAY) == expected

    def test_hourly(self):
        assert periods_elapsed(START, START + timedelta(hours=5, minutes=59), HOUR) == 5

    def test_naive_datetimes_are_treated_as_utc(self):
        naive_start = START.replace(tzinfo=None)

        assert periods_elapsed(naive_start, START + DAY, DAY) == 1
        assert ensure_utc(naive_start) == START


class TestPeriodAt:
    def test_daily_period_is_truncated_to_midnight(self):
        assert period_at(START, 1, DAY) == datetime(2026, 1, 6, tzinfo=timezone.utc)

    def test_hourly_period_is_truncated_to_the_hour(self):
        assert period_at(START, 2, HOUR) == datetime(2026, 1, 5, 11, tzinfo=timezone.utc)

    def test_consecutive_periods_are_distinct(self):
        keys = {period_at(START, i, DAY) for i in range(1, 31)}
        assert len(keys) == 30


def test_period_length_by_kind():
    settings = Settings(_env_file=None, INVESTMENT_PERIOD_HOURS=24, LIVE_TRADE_PERIOD_HOURS=1)

    assert period_length(PositionKind.INVESTMENT, settings) == DAY
    assert period_length(PositionKind.LIVE_TRADE, settings) == HOUR


def test_maturity_time():
    assert maturity_time(START, 7, DAY) == START + DAY * 7


class TestMoney:
    def test_float_input_avoids_binary_error(self):
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_half_up_rounding(self):
        assert to_money("2.345") == Decimal("2.35")

    def test_invalid_amount(self):
        with pytest.raises(ValueError):
            to_money("ten")

    def test_period_profit(self):
        assert period_profit(Decimal("200"), Decimal("0.02")) == Decimal("4.00")
        assert period_profit(Decimal("333.33"), Decimal("0.015")) == Decimal("5.00")
