"""SQLAlchemy booking store."""

import logging
import threading
import uuid
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional, Union

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    and_,
    create_engine,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from ..models.booking import Booking
from ..models.owner import Owner
from ..utils.exceptions import BookingNotFoundError, OwnerNotFoundError
from ..utils.intervals import ensure_utc
from .base import BookingFilter, BookingStore

logger = logging.getLogger(__name__)

Base = declarative_base()


def generate_id() -> str:
    return str(uuid.uuid4())


class OwnerRow(Base):
    __tablename__ = "owners"

    id = Column(String(36), primary_key=True, default=generate_id)
    external_identity_id = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    picture = Column(String(1000), nullable=True)

    # Google refresh token and calendar reference
    external_calendar_credential = Column(Text, nullable=True)
    external_calendar_id = Column(String(500), nullable=True)

    bookings = relationship("BookingRow", back_populates="owner", cascade="all, delete-orphan")


class BookingRow(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(
        String(36), ForeignKey("owners.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title = Column(String(500), nullable=False)
    start_time = Column(DateTime(timezone=True), index=True, nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    external_event_id = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    owner = relationship("OwnerRow", back_populates="bookings")


OWNER_FIELDS = (
    "external_identity_id",
    "email",
    "name",
    "picture",
    "external_calendar_credential",
    "external_calendar_id",
)
BOOKING_FIELDS = (
    "owner_id",
    "title",
    "start_time",
    "end_time",
    "external_event_id",
    "created_at",
    "updated_at",
)


def _owner(row: OwnerRow) -> Owner:
    return Owner(id=row.id, **{name: getattr(row, name) for name in OWNER_FIELDS})


def _booking(row: BookingRow) -> Booking:
    # SQLite drops tzinfo; values are always written in UTC
    return Booking(id=row.id, **{name: getattr(row, name) for name in BOOKING_FIELDS})


def _utc_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        key: ensure_utc(value) if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


class SqlBookingStore(BookingStore):
    """Persist owners and bookings in a relational database."""

    def __init__(self, engine: Union[Engine, str]):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine or database URL
        """
        if isinstance(engine, str):
            engine = create_engine(engine, pool_pre_ping=True)
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        self._locks_guard = threading.Lock()
        self._owner_locks: defaultdict[str, threading.RLock] = defaultdict(threading.RLock)

    def create_schema(self) -> None:
        """Create tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database schema ready")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def find_owner_by_external_identity(self, external_identity_id: str) -> Optional[Owner]:
        with self._session() as session:
            row = session.execute(
                select(OwnerRow).where(OwnerRow.external_identity_id == external_identity_id)
            ).scalar_one_or_none()
            return _owner(row) if row else None

    def get_owner(self, owner_id: str) -> Optional[Owner]:
        with self._session() as session:
            row = session.get(OwnerRow, owner_id)
            return _owner(row) if row else None

    def create_owner(self, fields: dict[str, Any]) -> Owner:
        with self._session() as session:
            row = OwnerRow(**fields)
            session.add(row)
            session.flush()
            return _owner(row)

    def update_owner(self, owner_id: str, fields: dict[str, Any]) -> Owner:
        with self._session() as session:
            row = session.get(OwnerRow, owner_id)
            if row is None:
                raise OwnerNotFoundError(f"Owner {owner_id} not found")
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            return _owner(row)

    def create_booking(self, fields: dict[str, Any]) -> Booking:
        with self._session() as session:
            row = BookingRow(**_utc_fields(fields))
            session.add(row)
            session.flush()
            return _booking(row)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._session() as session:
            row = session.get(BookingRow, booking_id)
            return _booking(row) if row else None

    def update_booking(self, booking_id: str, fields: dict[str, Any]) -> Booking:
        with self._session() as session:
            row = session.get(BookingRow, booking_id)
            if row is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")
            for key, value in _utc_fields(fields).items():
                setattr(row, key, value)
            session.flush()
            return _booking(row)

    def delete_booking(self, booking_id: str) -> Booking:
        with self._session() as session:
            row = session.get(BookingRow, booking_id)
            if row is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")
            booking = _booking(row)
            session.delete(row)
            return booking

    def find_bookings(
        self, owner_id: str, booking_filter: Optional[BookingFilter] = None
    ) -> list[Booking]:
        booking_filter = booking_filter or BookingFilter()
        query = select(BookingRow).where(BookingRow.owner_id == owner_id)

        if booking_filter.exclude_id is not None:
            query = query.where(BookingRow.id != booking_filter.exclude_id)

        if booking_filter.overlap_start is not None and booking_filter.overlap_end is not None:
            start = ensure_utc(booking_filter.overlap_start)
            end = ensure_utc(booking_filter.overlap_end)
            query = query.where(
                or_(
                    # Candidate starts during existing booking
                    and_(BookingRow.start_time <= start, BookingRow.end_time > start),
                    # Candidate ends during existing booking
                    and_(BookingRow.start_time < end, BookingRow.end_time >= end),
                    # Candidate contains existing booking
                    and_(BookingRow.start_time >= start, BookingRow.end_time <= end),
                )
            )

        if booking_filter.start_from is not None:
            query = query.where(BookingRow.start_time >= ensure_utc(booking_filter.start_from))

        query = query.order_by(BookingRow.start_time.asc())
        if booking_filter.limit is not None:
            query = query.limit(booking_filter.limit)

        with self._session() as session:
            return [_booking(row) for row in session.execute(query).scalars()]

    def clear_external_event_ids(self, owner_id: str) -> int:
        with self._session() as session:
            result = session.execute(
                update(BookingRow)
                .where(BookingRow.owner_id == owner_id, BookingRow.external_event_id.isnot(None))
                .values(external_event_id=None)
            )
            return result.rowcount or 0

    @contextmanager
    def owner_lock(self, owner_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._owner_locks[owner_id]

        with lock:
            if self.engine.dialect.name == "sqlite":
                # SQLite has no row locks and serializes writers itself
                yield
                return

            # Lock the owner row for the duration of the check-then-write.
            # NO KEY UPDATE still lets other sessions insert bookings that
            # reference the row.
            session = self.SessionLocal()
            try:
                session.execute(
                    select(OwnerRow.id)
                    .where(OwnerRow.id == owner_id)
                    .with_for_update(key_share=True)
                )
                yield
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
