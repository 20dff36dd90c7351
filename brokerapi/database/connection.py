from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from brokerapi.config import Settings, settings


def build_engine(config: Settings) -> Engine:
    """DB 엔진 생성 - PostgreSQL 은 풀 + search_path, SQLite 는 로컬 개발용"""
    url = config.database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=config.DEBUG)

    return create_engine(
        url,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # 끊긴 연결 감지
        pool_recycle=3600,
        echo=config.DEBUG,
        connect_args={"options": f"-csearch_path={config.POSTGRES_SCHEMA}"},
    )


engine = build_engine(settings)

# 커밋 후에도 잔액/포지션 객체를 같은 요청(배치) 안에서 계속 읽을 수 있도록
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
