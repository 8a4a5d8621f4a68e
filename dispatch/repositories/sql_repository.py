"""Relational backend: one table per collection, accessed through SQLAlchemy sessions."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Optional

from sqlalchemy import Date, delete, or_, select, text
from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    StatementError,
)
from sqlalchemy.orm import Session

from dispatch.core.config import get_settings
from dispatch.core.errors import (
    ConnectionUnavailable,
    ConstraintViolation,
    NotFound,
    StorageError,
)
from dispatch.db.models import MODELS, Assignment, Shift
from dispatch.db.session import get_session
from dispatch.domain.entities import ensure_entity

from .base import BaseStore

# Filled in by the database.
_SERVER_COLUMNS = {"created_at", "updated_at"}


def _row_to_dict(row) -> dict:
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        if isinstance(value, date):
            value = value.isoformat()
        data[column.name] = value
    return data


def _coerce(model, key: str, value: Any) -> Any:
    column = model.__table__.columns.get(key)
    if column is not None and isinstance(column.type, Date) and isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise ConstraintViolation(f"{key}={value!r} is not an ISO date") from exc
    return value


class RelationalStore(BaseStore):
    """CRUD helpers wrapping the SQLAlchemy session."""

    name = "relational"

    def _model(self, entity: str):
        return MODELS[ensure_entity(entity)]

    def _values(self, model, record: dict) -> dict:
        columns = model.__table__.columns
        return {
            key: _coerce(model, key, value)
            for key, value in record.items()
            if key in columns and key not in _SERVER_COLUMNS
        }

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with get_session() as session:
                yield session
        except (IntegrityError, DataError) as exc:
            raise ConstraintViolation(str(exc.orig)) from exc
        except (OperationalError, InterfaceError) as exc:
            raise ConnectionUnavailable(str(exc.orig)) from exc
        except StatementError as exc:
            raise ConstraintViolation(str(exc)) from exc

    # -------------------------- generic CRUD --------------------------
    def get_all(self, entity: str) -> list[dict]:
        model = self._model(entity)
        with self._session() as session:
            return [_row_to_dict(row) for row in session.execute(select(model)).scalars().all()]

    def get_by_id(self, entity: str, record_id: str) -> Optional[dict]:
        model = self._model(entity)
        with self._session() as session:
            row = session.get(model, record_id)
            return _row_to_dict(row) if row else None

    def get_by_attribute(self, entity: str, attribute: str, value: Any) -> list[dict]:
        model = self._model(entity)
        if attribute not in model.__table__.columns:
            return []
        stmt = select(model).where(getattr(model, attribute) == _coerce(model, attribute, value))
        with self._session() as session:
            return [_row_to_dict(row) for row in session.execute(stmt).scalars().all()]

    def insert(self, entity: str, record: dict) -> dict:
        model = self._model(entity)
        values = self._values(model, record)
        if not values.get("id"):
            values.pop("id", None)
        with self._session() as session:
            row = model(**values)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _row_to_dict(row)

    def update(self, entity: str, record_id: str, changes: dict) -> dict:
        model = self._model(entity)
        values = self._values(model, changes)
        values.pop("id", None)
        with self._session() as session:
            row = session.get(model, record_id)
            if row is None:
                raise NotFound(f"{entity} record {record_id} not found")
            for key, value in values.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return _row_to_dict(row)

    def delete(self, entity: str, record_id: str) -> dict:
        model = self._model(entity)
        with self._session() as session:
            row = session.get(model, record_id)
            if row is None:
                raise NotFound(f"{entity} record {record_id} not found")
            data = _row_to_dict(row)
            session.delete(row)
            session.commit()
            return data

    def clear(self, entity: str) -> int:
        model = self._model(entity)
        with self._session() as session:
            result = session.execute(delete(model))
            session.commit()
            return result.rowcount or 0

    # -------------------------- shifts / assignments --------------------------
    def shifts_for_date(self, day: str, branch_id: str | None = None) -> list[dict]:
        stmt = select(Shift).where(Shift.date == _coerce(Shift, "date", day))
        if branch_id:
            stmt = stmt.where(Shift.branch_id == branch_id)
        with self._session() as session:
            return [_row_to_dict(row) for row in session.execute(stmt).scalars().all()]

    def find_shift(self, person_id: str, day: str) -> Optional[dict]:
        stmt = select(Shift).where(Shift.person_id == person_id, Shift.date == _coerce(Shift, "date", day))
        with self._session() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return _row_to_dict(row) if row else None

    def assignments_for_date(self, day: str, branch_id: str | None = None) -> list[dict]:
        stmt = select(Assignment).where(Assignment.date == _coerce(Assignment, "date", day))
        if branch_id:
            stmt = stmt.where(Assignment.branch_id == branch_id)
        with self._session() as session:
            return [_row_to_dict(row) for row in session.execute(stmt).scalars().all()]

    def assignments_for_person(self, person_id: str, day: str | None = None) -> list[dict]:
        stmt = select(Assignment).where(
            or_(Assignment.courier_id == person_id, Assignment.passenger_id == person_id)
        )
        if day:
            stmt = stmt.where(Assignment.date == _coerce(Assignment, "date", day))
        with self._session() as session:
            return [_row_to_dict(row) for row in session.execute(stmt).scalars().all()]

    # -------------------------- status --------------------------
    def is_ready(self) -> bool:
        if not get_settings().relational_configured:
            return False
        try:
            with get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, StorageError):
            return False

    def describe(self) -> dict:
        settings = get_settings()
        return {
            "backend": self.name,
            "ready": self.is_ready(),
            "configured": settings.relational_configured,
        }
