from fastapi import Depends
from sqlalchemy.orm import Session

from brokerapi.config import settings
from brokerapi.database.session import get_db

# Services
from brokerapi.services.balance_service import BalanceService
from brokerapi.services.position_service import PositionService
from brokerapi.services.profit_distribution_service import ProfitDistributionService


def get_balance_service(db: Session = Depends(get_db)) -> BalanceService:
    return BalanceService(db=db, settings=settings)


def get_position_service(db: Session = Depends(get_db)) -> PositionService:
    return PositionService(db=db, settings=settings)


def get_profit_distribution_service(
    db: Session = Depends(get_db),
) -> ProfitDistributionService:
    return ProfitDistributionService(db=db, settings=settings)
