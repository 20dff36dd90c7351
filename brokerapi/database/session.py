import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brokerapi.core.exceptions import StorageError
from brokerapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context():
    """컨텍스트 매니저를 사용한 데이터베이스 세션 관리"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, commit: bool = True) -> Iterator[Session]:
    """
    하나의 원자적 작업 단위 (all-or-nothing)

    Args:
        db: 작업에 사용할 세션
        commit: False면 호출자의 작업 단위에 합류하며, 커밋/롤백은 호출자가 담당

    Raises:
        StorageError: SQLAlchemy 레벨 실패 (롤백 후 변환)
        그 외 예외는 롤백 후 그대로 전파
    """
    if not commit:
        yield db
        return

    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage failure, unit of work rolled back: {str(e)}")
        raise StorageError(f"Storage failure: {e.__class__.__name__}") from e
    except Exception:
        db.rollback()
        raise
