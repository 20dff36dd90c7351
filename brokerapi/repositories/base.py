from abc import ABC
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Query, Session

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """
    리포지토리 공통 베이스 - 조회 결과는 Pydantic 스키마로 반환

    쓰기 메서드의 commit 인자:
    - True: 이 호출에서 커밋 (실패 시 롤백)
    - False: flush 까지만 수행, 서비스의 작업 단위(unit_of_work)가 커밋/롤백을 소유
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    def _filtered(self, filters: Optional[Dict[str, Any]] = None) -> Query:
        """컬럼명=값 동등 조건 적용 (모델에 없는 키는 무시)"""
        query = self.db.query(self.model_class)
        for key, value in (filters or {}).items():
            column = getattr(self.model_class, key, None)
            if column is not None:
                query = query.filter(column == value)
        return query

    def _get_model(self, id: Any, for_update: bool = False) -> Optional[T]:
        """PK 조회, for_update=True 면 SELECT ... FOR UPDATE"""
        query = self._filtered({"id": id})
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        return self._to_schema(self._get_model(id))

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return self._filtered(filters).count()

    def _add(self, instance: T, commit: bool = True) -> T:
        """인스턴스 저장 - flush 로 PK/서버 기본값 확보 후 commit 여부 결정"""
        self.db.add(instance)
        try:
            self.db.flush()
            self.db.refresh(instance)
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise
        return instance

    def create(self, commit: bool = True, **kwargs) -> Optional[SchemaType]:
        return self._to_schema(self._add(self.model_class(**kwargs), commit=commit))
