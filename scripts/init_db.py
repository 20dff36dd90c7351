import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from brokerapi.config import settings
from brokerapi.database.connection import engine
from brokerapi.models.base import Base

# create_all 대상 테이블 등록
from brokerapi.models import balance, distribution, position, transaction  # noqa: F401


def init_db():
    """데이터베이스 초기화 (스키마 + 테이블)"""
    try:
        with engine.connect() as conn:
            conn.execute(
                text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
            )
            conn.commit()

        Base.metadata.create_all(bind=engine)
        print(
            f"Database initialized successfully with schema: {settings.POSTGRES_SCHEMA}"
        )
        print(f"Tables: {', '.join(sorted(Base.metadata.tables))}")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
