from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from brokerapi.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from brokerapi.models.balance import BalanceType, UserBalance
from brokerapi.models.transaction import (
    Transaction,
    TransactionDirection,
    TransactionType,
)
from brokerapi.services.balance_service import BalanceService


@pytest.fixture
def service(db, clamp_settings):
    return BalanceService(db, settings=clamp_settings)


def _assert_total_invariant(balance):
    assert balance.total_balance == (
        balance.profit_balance
        + balance.deposit_balance
        + balance.bonus_balance
        + balance.card_balance
    )


class TestAdjust:
    """하위 잔액 조정 테스트"""

    def test_credit_updates_sub_balance_and_total(self, service, make_user):
        """입금 시 하위 잔액과 total 이 함께 증가"""
        # Arrange
        make_user(1)

        # Act
        result = service.adjust(1, BalanceType.DEPOSIT, Decimal("500"), "Deposit", TransactionType.DEPOSIT)

        # Assert
        assert result.balance.deposit_balance == Decimal("500.00")
        assert result.balance.total_balance == Decimal("500.00")
        assert result.realized_delta == Decimal("500.00")
        assert result.clamped is False
        assert result.transaction.direction == TransactionDirection.CREDIT
        assert result.transaction.amount == Decimal("500.00")
        assert result.transaction.balance_after == Decimal("500.00")
        _assert_total_invariant(result.balance)

    def test_accepts_string_enum_values(self, service, make_user):
        make_user(1)

        result = service.adjust(1, "bonus", "25.50", "Welcome bonus", "bonus")

        assert result.balance.bonus_balance == Decimal("25.50")
        assert result.transaction.type == TransactionType.BONUS

    def test_credit_score_is_excluded_from_total(self, service, make_user):
        """credit_score 는 total 에 포함되지 않음"""
        make_user(1, deposit="100")

        result = service.adjust(1, BalanceType.CREDIT_SCORE, Decimal("700"), "Score", TransactionType.CREDIT)

        assert result.balance.credit_score_balance == Decimal("700.00")
        assert result.balance.total_balance == Decimal("100.00")
        _assert_total_invariant(result.balance)

    def test_deduction_is_clamped_at_zero(self, service, make_user, db):
        """잔액 이상 차감 시 0 으로 내림 (CLAMP)"""
        # Arrange
        make_user(1, deposit="100")

        # Act
        result = service.adjust(1, BalanceType.DEPOSIT, Decimal("-150"), "Fee", TransactionType.DEBIT)

        # Assert
        assert result.balance.deposit_balance == Decimal("0.00")
        assert result.balance.total_balance == Decimal("0.00")
        assert result.clamped is True
        assert result.requested_delta == Decimal("-150.00")
        assert result.realized_delta == Decimal("-100.00")
        # 거래 레코드는 실제 반영 금액으로 기록
        assert result.transaction.amount == Decimal("100.00")
        assert result.transaction.direction == TransactionDirection.DEBIT

    def test_deduction_is_rejected_under_reject_policy(self, db, make_user, reject_settings):
        """REJECT 정책에서는 잔액 부족 시 변경 없이 거부"""
        make_user(1, deposit="100")
        service = BalanceService(db, settings=reject_settings)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            service.adjust(1, BalanceType.DEPOSIT, Decimal("-150"), "Fee", TransactionType.DEBIT)

        assert exc_info.value.error_code == "BALANCE_001"
        balance = service.get_balance(1)
        assert balance.deposit_balance == Decimal("100.00")
        assert db.query(Transaction).count() == 1  # 초기 입금만

    def test_zero_delta_is_rejected(self, service, make_user):
        make_user(1, deposit="100")

        with pytest.raises(ValidationError):
            service.adjust(1, BalanceType.DEPOSIT, Decimal("0"), "Nothing", TransactionType.DEPOSIT)

    def test_unknown_balance_type_is_rejected(self, service, make_user):
        make_user(1)

        with pytest.raises(ValidationError) as exc_info:
            service.adjust(1, "savings", Decimal("10"), "Bad", TransactionType.DEPOSIT)

        assert "allowed" in exc_info.value.details

    def test_unknown_transaction_type_is_rejected(self, service, make_user):
        make_user(1)

        with pytest.raises(ValidationError):
            service.adjust(1, BalanceType.DEPOSIT, Decimal("10"), "Bad", "cashback")

    def test_missing_balance_record(self, service):
        with pytest.raises(NotFoundError):
            service.adjust(999, BalanceType.DEPOSIT, Decimal("10"), "Deposit", TransactionType.DEPOSIT)

    def test_amounts_are_rounded_half_up(self, service, make_user):
        make_user(1)

        result = service.adjust(1, BalanceType.PROFIT, "1.005", "Profit", TransactionType.PROFIT)

        assert result.balance.profit_balance == Decimal("1.01")

    def test_storage_failure_is_translated_and_rolled_back(self, db, clamp_settings, make_user):
        """저장소 실패 시 StorageError 로 변환되고 롤백됨"""
        make_user(1, deposit="100")
        service = BalanceService(db, settings=clamp_settings)

        with patch.object(
            service.transaction_repo,
            "append_transaction",
            side_effect=OperationalError("INSERT", {}, Exception("connection lost")),
        ):
            with pytest.raises(StorageError):
                service.adjust(1, BalanceType.DEPOSIT, Decimal("50"), "Deposit", TransactionType.DEPOSIT)

        assert service.get_balance(1).deposit_balance == Decimal("100.00")


class TestAdminAdjust:
    def test_positive_amount_is_admin_funding(self, service, make_user):
        make_user(1)

        result = service.admin_adjust(1, BalanceType.BONUS, Decimal("30"), "Promo", admin_id=7)

        assert result.transaction.type == TransactionType.ADMIN_FUNDING
        assert result.balance.bonus_balance == Decimal("30.00")
        assert "Admin adjustment by 7" in result.transaction.description

    def test_negative_amount_is_admin_deduction(self, service, make_user):
        make_user(1, deposit="100")

        result = service.admin_adjust(1, BalanceType.DEPOSIT, Decimal("-40"), "Chargeback", admin_id=7)

        assert result.transaction.type == TransactionType.ADMIN_DEDUCTION
        assert result.balance.deposit_balance == Decimal("60.00")


class TestTotalMaintenance:
    """total_balance 재계산/정합성 테스트"""

    def _corrupt_total(self, db, user_id, value):
        row = db.query(UserBalance).filter(UserBalance.user_id == user_id).one()
        row.total_balance = Decimal(value)
        db.commit()

    def test_recalculate_total_repairs_drift(self, service, make_user, db):
        # Given
        make_user(1, deposit="100")
        self._corrupt_total(db, 1, "999")
        transactions_before = db.query(Transaction).count()

        # When
        result = service.recalculate_total(1)

        # Then
        assert result.total_balance == Decimal("100.00")
        assert db.query(Transaction).count() == transactions_before

    def test_recalculate_total_is_idempotent(self, service, make_user):
        make_user(1, deposit="100")

        first = service.recalculate_total(1)
        second = service.recalculate_total(1)

        assert first.total_balance == second.total_balance == Decimal("100.00")

    def test_check_integrity_reports_mismatch(self, service, make_user, db):
        make_user(1, deposit="100")
        make_user(2, deposit="50")
        self._corrupt_total(db, 2, "80")

        report = service.check_integrity()

        assert report.status == "MISMATCH"
        assert report.discrepancy_count == 1
        assert report.discrepancies[0].user_id == 2
        assert report.discrepancies[0].discrepancy == Decimal("30.00")

    def test_repair_all_totals(self, service, make_user, db):
        make_user(1, deposit="100")
        make_user(2, deposit="50")
        self._corrupt_total(db, 1, "0")
        self._corrupt_total(db, 2, "80")

        repaired = service.repair_all_totals()

        assert repaired.repaired_count == 2
        assert service.check_integrity().status == "OK"


class TestTransactionHistory:
    def test_history_is_newest_first_and_paged(self, service, make_user):
        make_user(1)
        for amount in ("10", "20", "30"):
            service.adjust(1, BalanceType.DEPOSIT, Decimal(amount), "Deposit", TransactionType.DEPOSIT)

        page = service.get_transactions(1, limit=2, offset=0)

        assert page.total_count == 3
        assert page.has_next is True
        assert [e.amount for e in page.entries] == [Decimal("30.00"), Decimal("20.00")]

    def test_history_filters_by_balance_type(self, service, make_user):
        make_user(1, deposit="100")
        service.adjust(1, BalanceType.BONUS, Decimal("5"), "Bonus", TransactionType.BONUS)

        page = service.get_transactions(1, balance_type="bonus")

        assert page.total_count == 1
        assert page.entries[0].balance_type == BalanceType.BONUS

    def test_limit_is_capped(self, db, make_user):
        make_user(1)
        settings = Mock(TRANSACTION_PAGE_MAX=100)
        service = BalanceService(db, settings=settings)
        service.transaction_repo = Mock()

        service.get_transactions(1, limit=1000)

        service.transaction_repo.get_user_transactions.assert_called_once_with(
            user_id=1, limit=100, offset=0, balance_type=None
        )
