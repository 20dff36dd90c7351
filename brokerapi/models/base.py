from sqlalchemy import BigInteger, Column, DateTime, Integer, Numeric, func
from sqlalchemy.orm import declarative_base, declared_attr

Base = declarative_base()

# SQLite는 INTEGER PRIMARY KEY 에서만 자동 증가하므로 variant 지정
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

# 모든 금액 컬럼: 소수점 2자리 고정
Money = Numeric(15, 2)


def enum_values(enum_class):
    """Enum 컬럼에 멤버 이름 대신 값(소문자 문자열)을 저장"""
    return [member.value for member in enum_class]


class TimestampMixin:
    """타임스탬프 필드를 위한 믹스인"""

    @declared_attr
    def created_at(cls):
        return Column(DateTime(timezone=True), server_default=func.now())

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
        )


class BaseModel(Base, TimestampMixin):
    """모든 모델의 베이스 클래스"""

    __abstract__ = True
