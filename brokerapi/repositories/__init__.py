# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .balance_repository import BalanceRepository
from .transaction_repository import TransactionRepository
from .plan_repository import PlanRepository
from .position_repository import PositionRepository
from .distribution_repository import DistributionRepository

__all__ = [
    "BaseRepository",
    "BalanceRepository",
    "TransactionRepository",
    "PlanRepository",
    "PositionRepository",
    "DistributionRepository",
]
