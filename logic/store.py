# backend/logic/store.py
"""
Thin document-store style access to the SQLAlchemy models.

Filters are keyword equality predicates; a list/tuple/set value becomes an
IN predicate. ``find`` also accepts raw criteria through ``where``. Every
write commits on its own, there are no multi-row transactions.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from logic.errors import StorageError

logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    def _where(self, stmt, filters: Dict[str, Any]):
        for name, value in filters.items():
            column = getattr(self.model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        return stmt

    def _fail(self, action: str, exc: SQLAlchemyError):
        self.db.rollback()
        logger.error("%s on %s failed: %s", action, self.model.__tablename__, exc, exc_info=True)
        raise StorageError(f"Database error while running {action}") from exc

    def find(self, order_by=None, limit: Optional[int] = None, where=(), **filters) -> List[Any]:
        """``where`` takes extra SQLAlchemy criteria such as range comparisons."""
        stmt = self._where(select(self.model), filters)
        if where:
            stmt = stmt.where(*where)
        if order_by is not None:
            stmt = stmt.order_by(*order_by) if isinstance(order_by, (list, tuple)) else stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            self._fail("find", e)

    def find_one(self, **filters) -> Optional[Any]:
        stmt = self._where(select(self.model), filters).limit(1)
        try:
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as e:
            self._fail("find_one", e)

    def find_by_id(self, id_) -> Optional[Any]:
        try:
            return self.db.get(self.model, id_)
        except SQLAlchemyError as e:
            self._fail("find_by_id", e)

    def count_documents(self, **filters) -> int:
        stmt = self._where(select(func.count()).select_from(self.model), filters)
        try:
            return int(self.db.scalar(stmt) or 0)
        except SQLAlchemyError as e:
            self._fail("count_documents", e)

    def distinct(self, column: str, **filters) -> set:
        stmt = self._where(select(getattr(self.model, column)).distinct(), filters)
        try:
            return set(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            self._fail("distinct", e)

    def create(self, **fields):
        obj = self.model(**fields)
        try:
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
        except SQLAlchemyError as e:
            self._fail("create", e)
        return obj

    def insert_many(self, docs: Iterable[Dict[str, Any]]) -> List[Any]:
        objs = [self.model(**doc) for doc in docs]
        try:
            self.db.add_all(objs)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("insert_many", e)
        return objs

    def save(self, obj):
        try:
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
        except SQLAlchemyError as e:
            self._fail("save", e)
        return obj
