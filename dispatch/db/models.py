"""SQLAlchemy models mirroring the JSON collections (snake_case columns)."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Branch(Base):
    __tablename__ = "branches"

    id = Column(String(64), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(32), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Person(Base):
    __tablename__ = "people"

    id = Column(String(64), primary_key=True, default=_uuid)
    external_contact_id = Column(String(64), unique=True, nullable=True)
    role = Column(String(16), nullable=False)
    display_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    home_address = Column(Text, nullable=True)
    branch_id = Column(String(64), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    position = Column(String(255), nullable=True)
    vehicle_model = Column(String(255), nullable=True)
    vehicle_plate = Column(String(32), nullable=True)
    work_until = Column(String(8), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Shift(Base):
    __tablename__ = "shifts"
    __table_args__ = (UniqueConstraint("person_id", "date", name="uq_shifts_person_date"),)

    id = Column(String(64), primary_key=True, default=_uuid)
    person_id = Column(String(64), ForeignKey("people.id"), nullable=False)
    branch_id = Column(String(64), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(8), nullable=True)
    end_time = Column(String(8), nullable=True)
    is_working = Column(Boolean, default=True, nullable=False)
    destination_address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(String(64), primary_key=True, default=_uuid)
    courier_id = Column(String(64), ForeignKey("people.id"), nullable=False)
    passenger_id = Column(String(64), ForeignKey("people.id"), nullable=False)
    branch_id = Column(String(64), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True)
    pickup_address = Column(Text, nullable=False, default="")
    dropoff_address = Column(Text, nullable=False, default="")
    assigned_time = Column(String(32), nullable=True)
    date = Column(Date, nullable=False)
    status = Column(String(16), default="assigned", nullable=False)
    notes = Column(Text, nullable=True)
    courier_confirmed = Column(Boolean, default=False, nullable=False)
    passenger_confirmed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


MODELS = {
    "people": Person,
    "branches": Branch,
    "shifts": Shift,
    "assignments": Assignment,
}
