"""Entity storage for accounts, categories and transactions.

Two interchangeable implementations sit behind :class:`EntityStore`:
``SQLStore`` (durable, SQLAlchemy) and ``MemoryStore`` (process-local,
used by tests and the ``memory`` backend). Both give all-or-nothing
visibility for everything executed inside one ``transaction()`` scope.
Operations called outside a scope run in a scope of their own.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import Settings
from database import Base, make_engine, make_session_factory, session_scope
from errors import StoreError
from models import Account, ExpenseCategory, IncomeCategory, Transaction, TransactionType
from schemas import AccountOut, CategoryOut, TransactionOut


logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    account = "account"
    income_category = "income_category"
    expense_category = "expense_category"
    transaction = "transaction"

    @classmethod
    def category_for(cls, txn_type: TransactionType) -> "EntityKind":
        if txn_type == TransactionType.income:
            return cls.income_category
        return cls.expense_category


RECORD_SCHEMAS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.account: AccountOut,
    EntityKind.income_category: CategoryOut,
    EntityKind.expense_category: CategoryOut,
    EntityKind.transaction: TransactionOut,
}

ORM_MODELS: dict[EntityKind, type[Base]] = {
    EntityKind.account: Account,
    EntityKind.income_category: IncomeCategory,
    EntityKind.expense_category: ExpenseCategory,
    EntityKind.transaction: Transaction,
}


class EntityStore(ABC):
    @abstractmethod
    def get(
        self, kind: EntityKind, entity_id: int, *, for_update: bool = False
    ) -> Optional[BaseModel]:
        """Return the record or ``None``.

        ``for_update`` locks the row until the enclosing scope ends so a
        read-modify-write on it cannot lose a concurrent update.
        """

    @abstractmethod
    def list(self, kind: EntityKind, **criteria: object) -> list[BaseModel]:
        """Records of ``kind`` whose fields equal ``criteria``, by id."""

    @abstractmethod
    def insert(self, kind: EntityKind, values: Mapping[str, object]) -> BaseModel:
        pass

    @abstractmethod
    def update(
        self, kind: EntityKind, entity_id: int, patch: Mapping[str, object]
    ) -> Optional[BaseModel]:
        pass

    @abstractmethod
    def delete(self, kind: EntityKind, entity_id: int) -> bool:
        pass

    @abstractmethod
    def transaction(self) -> Iterator[None]:
        """Context manager; nested scopes join the outermost one."""


class MemoryStore(EntityStore):
    def __init__(self) -> None:
        self._tables: dict[EntityKind, dict[int, BaseModel]] = {
            kind: {} for kind in EntityKind
        }
        self._next_ids: dict[EntityKind, int] = {kind: 1 for kind in EntityKind}
        # held for a whole scope, so scopes are serialized
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            snapshot = None
            if outermost:
                snapshot = (
                    {kind: dict(rows) for kind, rows in self._tables.items()},
                    dict(self._next_ids),
                )
            self._depth += 1
            try:
                yield
            except Exception:
                if snapshot is not None:
                    self._tables, self._next_ids = snapshot
                raise
            finally:
                self._depth -= 1

    def get(self, kind, entity_id, *, for_update=False):
        with self.transaction():
            record = self._tables[kind].get(entity_id)
            return record.model_copy() if record is not None else None

    def list(self, kind, **criteria):
        with self.transaction():
            rows = sorted(self._tables[kind].items())
            return [
                record.model_copy()
                for _, record in rows
                if all(getattr(record, key) == value for key, value in criteria.items())
            ]

    def insert(self, kind, values):
        with self.transaction():
            entity_id = self._next_ids[kind]
            record = RECORD_SCHEMAS[kind].model_validate({**values, "id": entity_id})
            self._tables[kind][entity_id] = record
            self._next_ids[kind] = entity_id + 1
            return record.model_copy()

    def update(self, kind, entity_id, patch):
        with self.transaction():
            current = self._tables[kind].get(entity_id)
            if current is None:
                return None
            record = RECORD_SCHEMAS[kind].model_validate(
                {**current.model_dump(), **patch, "id": entity_id}
            )
            self._tables[kind][entity_id] = record
            return record.model_copy()

    def delete(self, kind, entity_id):
        with self.transaction():
            return self._tables[kind].pop(entity_id, None) is not None


class SQLStore(EntityStore):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._factory = session_factory
        self._local = threading.local()

    @classmethod
    def from_url(cls, database_url: str, *, create_schema: bool = False) -> SQLStore:
        engine = make_engine(database_url)
        if create_schema:
            Base.metadata.create_all(engine)
        return cls(make_session_factory(engine))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return
        try:
            with session_scope(self._factory) as session:
                self._local.session = session
                try:
                    yield
                finally:
                    self._local.session = None
        except SQLAlchemyError as exc:
            logger.exception("store_error: transaction rolled back")
            raise StoreError(str(exc)) from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self.transaction():
            yield self._local.session

    @staticmethod
    def _record(kind: EntityKind, row: object) -> BaseModel:
        return RECORD_SCHEMAS[kind].model_validate(row)

    def get(self, kind, entity_id, *, for_update=False):
        model = ORM_MODELS[kind]
        with self._session() as session:
            stmt = select(model).where(model.id == entity_id)
            if for_update:
                # refresh a row the session already holds with the locked values
                stmt = stmt.with_for_update().execution_options(
                    populate_existing=True
                )
            row = session.scalar(stmt)
            return self._record(kind, row) if row is not None else None

    def list(self, kind, **criteria):
        model = ORM_MODELS[kind]
        with self._session() as session:
            stmt = select(model).filter_by(**criteria).order_by(model.id)
            return [self._record(kind, row) for row in session.scalars(stmt).all()]

    def insert(self, kind, values):
        model = ORM_MODELS[kind]
        with self._session() as session:
            row = model(**values)
            session.add(row)
            session.flush()
            return self._record(kind, row)

    def update(self, kind, entity_id, patch):
        model = ORM_MODELS[kind]
        with self._session() as session:
            row = session.get(model, entity_id)
            if row is None:
                return None
            for key, value in patch.items():
                setattr(row, key, value)
            session.flush()
            return self._record(kind, row)

    def delete(self, kind, entity_id):
        model = ORM_MODELS[kind]
        with self._session() as session:
            row = session.get(model, entity_id)
            if row is None:
                return False
            session.delete(row)
            session.flush()
            return True


def build_store(settings: Settings) -> EntityStore:
    if settings.store_backend == "memory":
        logger.info("store_selected: backend=memory")
        return MemoryStore()
    logger.info("store_selected: backend=sql")
    return SQLStore.from_url(settings.database_url, create_schema=True)
