"""
SQLAlchemy-backed appointment persistence.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional

import pendulum
from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from ..domain.exceptions import StorageError
from ..domain.models import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

Base = declarative_base()


class AppointmentRecord(Base):
    """Represents a confirmed appointment."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True)
    agent_id = Column(String, index=True, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False)
    location = Column(String)
    notes = Column(Text)
    external_event_id = Column(String, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


def _as_utc(value: datetime) -> pendulum.DateTime:
    # SQLite drops tzinfo; stored values are always UTC
    if value.tzinfo is None:
        return pendulum.instance(value, tz="UTC")
    return pendulum.instance(value).in_timezone("UTC")


def _to_domain(record: AppointmentRecord) -> Appointment:
    return Appointment(
        id=record.id,
        agent_id=record.agent_id,
        start_time=_as_utc(record.start_time),
        end_time=_as_utc(record.end_time),
        status=AppointmentStatus(record.status),
        location=record.location,
        notes=record.notes or "",
        external_event_id=record.external_event_id,
    )


class SqlAppointmentStore:
    """
    Stores appointments in any SQLAlchemy-supported database.

    Blocking database work runs in a worker thread so the async booking
    flow is not stalled. A write that overruns its deadline is rolled back
    inside that thread, so a reported failure always means nothing was
    committed.
    """

    def __init__(self, database_url: str, create_schema: bool = True):
        try:
            self.engine = create_engine(database_url)
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine,
            )
            if create_schema:
                Base.metadata.create_all(self.engine)
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"Could not open appointment database {database_url!r}: {exc}") from exc

    async def persist_appointment(
        self,
        appointment: Appointment,
        timeout_seconds: Optional[float] = None,
    ) -> Appointment:
        """
        Insert one appointment and return it with its id.

        Raises:
            StorageError: If the write fails or misses the deadline; the
                transaction is rolled back in both cases
        """
        deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        return await asyncio.to_thread(self._persist, appointment, deadline)

    def _build_record(self, appointment: Appointment) -> AppointmentRecord:
        return AppointmentRecord(
            id=appointment.id or str(uuid.uuid4()),
            agent_id=appointment.agent_id,
            start_time=appointment.start_time.in_timezone("UTC"),
            end_time=appointment.end_time.in_timezone("UTC"),
            status=appointment.status.value,
            location=appointment.location,
            notes=appointment.notes,
            external_event_id=appointment.external_event_id,
        )

    def _persist(self, appointment: Appointment, deadline: Optional[float] = None) -> Appointment:
        try:
            with self.SessionLocal() as session:
                record = self._build_record(appointment)
                session.add(record)
                session.flush()
                # Past the deadline the caller has been told the write failed
                if deadline is not None and time.monotonic() > deadline:
                    session.rollback()
                    logger.error(
                        "Appointment write for event %s missed its deadline; rolled back",
                        appointment.external_event_id,
                    )
                    raise StorageError("Appointment write exceeded its deadline and was rolled back")
                session.commit()
                session.refresh(record)
                return _to_domain(record)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not persist appointment: {exc}") from exc

    def list_for_agent(self, agent_id: str) -> List[Appointment]:
        """All appointments of an agent ordered by start time."""
        try:
            with self.SessionLocal() as session:
                rows = session.scalars(
                    select(AppointmentRecord)
                    .where(AppointmentRecord.agent_id == agent_id)
                    .order_by(AppointmentRecord.start_time)
                ).all()
                return [_to_domain(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load appointments: {exc}") from exc

    def find_by_external_event_id(self, external_event_id: str) -> Appointment | None:
        """Look up the local record of an external event, for reconciliation."""
        try:
            with self.SessionLocal() as session:
                row = session.scalars(
                    select(AppointmentRecord)
                    .where(AppointmentRecord.external_event_id == external_event_id)
                ).first()
                return _to_domain(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load appointment: {exc}") from exc
