from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from brokerapi.config import Settings, get_settings
from brokerapi.core.exceptions import (
    DuplicatePeriodError,
    InsufficientBalanceError,
    NotFoundError,
)
from brokerapi.database.session import get_db
from brokerapi.deps import (
    get_balance_service,
    get_position_service,
    get_profit_distribution_service,
)
from brokerapi.main import create_app
from brokerapi.models.position import PositionKind, PositionStatus
from brokerapi.schemas.balance import BalanceResponse
from brokerapi.schemas.distribution import DistributionRunResult
from brokerapi.schemas.position import PositionResponse
from brokerapi.schemas.transaction import TransactionHistoryResponse

AUTH = {"Authorization": "Bearer test-token"}
NOW = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def balance_service():
    return Mock()


@pytest.fixture
def position_service():
    return Mock()


@pytest.fixture
def distribution_service():
    return Mock()


@pytest.fixture
def client(balance_service, position_service, distribution_service):
    """서비스를 Mock 으로 교체한 테스트 클라이언트"""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, AUTH_TOKEN="test-token")
    app.dependency_overrides[get_db] = lambda: Mock()
    app.dependency_overrides[get_balance_service] = lambda: balance_service
    app.dependency_overrides[get_position_service] = lambda: position_service
    app.dependency_overrides[get_profit_distribution_service] = lambda: distribution_service
    return TestClient(app)


@pytest.fixture
def sample_balance():
    return BalanceResponse(
        user_id=1,
        profit_balance=Decimal("8.00"),
        deposit_balance=Decimal("500.00"),
        bonus_balance=Decimal("0.00"),
        card_balance=Decimal("0.00"),
        credit_score_balance=Decimal("0.00"),
        total_balance=Decimal("508.00"),
        updated_at=NOW,
    )


@pytest.fixture
def sample_position():
    return PositionResponse(
        id=10,
        user_id=1,
        plan_id=3,
        kind=PositionKind.INVESTMENT,
        amount=Decimal("200.00"),
        profit_rate=Decimal("0.020000"),
        duration=2,
        status=PositionStatus.ACTIVE,
        start_time=NOW,
        end_time=None,
        total_profit=Decimal("0.00"),
    )


class TestAuth:
    def test_health_does_not_require_token(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token_is_rejected(self, client):
        response = client.get("/balances/1")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"

    def test_wrong_token_is_rejected(self, client):
        response = client.get("/balances/1", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401


class TestBalanceRoutes:
    """잔액 라우터 테스트"""

    def test_get_balance(self, client, balance_service, sample_balance):
        # Given
        balance_service.get_balance.return_value = sample_balance

        # When
        response = client.get("/balances/1", headers=AUTH)

        # Then
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_balance"]) == Decimal("508.00")
        balance_service.get_balance.assert_called_once_with(1)

    def test_get_balance_not_found(self, client, balance_service):
        balance_service.get_balance.side_effect = NotFoundError("Balance record not found for user 9")

        response = client.get("/balances/9", headers=AUTH)

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND_001"

    def test_transactions_limit_must_be_positive(self, client):
        response = client.get("/balances/1/transactions?limit=0", headers=AUTH)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_large_transactions_limit_is_left_to_service_cap(self, client, balance_service):
        # 상한은 서비스가 TRANSACTION_PAGE_MAX 로 적용
        balance_service.get_transactions.return_value = TransactionHistoryResponse(
            entries=[], total_count=0, has_next=False
        )

        response = client.get("/balances/1/transactions?limit=500", headers=AUTH)

        assert response.status_code == 200
        balance_service.get_transactions.assert_called_once_with(
            1, limit=500, offset=0, balance_type=None
        )

    def test_admin_adjust_rejected_for_insufficient_balance(self, client, balance_service):
        balance_service.admin_adjust.side_effect = InsufficientBalanceError("Insufficient deposit balance")

        response = client.post(
            "/admin/balances/1/adjust",
            headers=AUTH,
            json={"balance_type": "deposit", "amount": "-900", "reason": "Chargeback", "admin_id": 7},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BALANCE_001"
        kwargs = balance_service.admin_adjust.call_args.kwargs
        assert kwargs["amount"] == Decimal("-900")
        assert kwargs["admin_id"] == 7

    def test_integrity_route_is_not_shadowed_by_user_route(self, client, balance_service):
        balance_service.check_integrity.return_value = {
            "status": "OK",
            "checked_at": NOW.isoformat(),
            "discrepancy_count": 0,
            "discrepancies": [],
        }

        response = client.get("/admin/balances/integrity", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["status"] == "OK"


class TestPositionRoutes:
    def test_open_position(self, client, position_service, sample_position):
        position_service.open_position.return_value = sample_position

        response = client.post(
            "/positions",
            headers=AUTH,
            json={"user_id": 1, "plan_id": 3, "amount": "200"},
        )

        assert response.status_code == 201
        assert response.json()["id"] == 10
        position_service.open_position.assert_called_once_with(1, 3, Decimal("200"))

    def test_open_position_rejects_non_positive_amount(self, client, position_service):
        response = client.post(
            "/positions",
            headers=AUTH,
            json={"user_id": 1, "plan_id": 3, "amount": "0"},
        )

        assert response.status_code == 422
        position_service.open_position.assert_not_called()

    def test_close_position_defaults_to_cancelled(self, client, position_service, sample_position):
        closed = sample_position.model_copy(update={"status": PositionStatus.CANCELLED, "end_time": NOW})
        position_service.close_position.return_value = {
            "position": closed,
            "changed": True,
            "principal_returned": Decimal("200.00"),
        }

        response = client.post("/positions/10/close", headers=AUTH, json={})

        assert response.status_code == 200
        assert response.json()["changed"] is True
        position_service.close_position.assert_called_once_with(10, PositionStatus.CANCELLED)


class TestDistributionRoutes:
    def test_run_distribution(self, client, distribution_service):
        distribution_service.distribute_pending_profits.return_value = DistributionRunResult(
            processed_count=2, total_amount=Decimal("8.00"), completed_count=1, run_at=NOW
        )

        response = client.post("/admin/distributions/run", headers=AUTH, json={"kind": "investment"})

        assert response.status_code == 200
        assert response.json()["processed_count"] == 2
        distribution_service.distribute_pending_profits.assert_called_once_with(kind=PositionKind.INVESTMENT)

    def test_duplicate_period_maps_to_conflict(self, client, distribution_service):
        distribution_service.distribute_pending_profits.side_effect = DuplicatePeriodError(10, 1)

        response = client.post("/admin/distributions/run", headers=AUTH)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DISTRIBUTION_001"
