from dependency_injector import containers, providers

from brokerapi.config import Settings
from brokerapi.database.session import get_db
from brokerapi.services.balance_service import BalanceService
from brokerapi.services.position_service import PositionService
from brokerapi.services.profit_distribution_service import ProfitDistributionService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class DatabaseModule(containers.DeclarativeContainer):
    """Database session."""

    # 배치 작업 1회당 세션 1개, shutdown_resources() 에서 close
    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    database = providers.DependenciesContainer()

    balance_service = providers.Factory(
        BalanceService, db=database.get_db, settings=config.config
    )
    position_service = providers.Factory(
        PositionService, db=database.get_db, settings=config.config
    )
    profit_distribution_service = providers.Factory(
        ProfitDistributionService, db=database.get_db, settings=config.config
    )


class Container(containers.DeclarativeContainer):
    """Batch/cron container (HTTP 요청은 deps.py 의 Depends 사용)."""

    config = providers.Container(ConfigModule)
    database = providers.Container(DatabaseModule)
    services = providers.Container(
        ServiceModule, config=config, database=database
    )
