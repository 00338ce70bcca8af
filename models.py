# models.py
from datetime import datetime, timezone
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores instants as UTC.

    SQLite keeps the wall-clock time and drops the offset, so everything is
    converted to UTC on the way in and tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Campaign(Base):
    """A promotion or event and the codes issued against it.

    The code list lives inside the row so that one UPDATE covers every
    change to it. ``version`` is bumped on each write and checked in the
    UPDATE's WHERE clause, which turns a concurrent writer into a
    ``StaleDataError`` instead of a lost update.
    """

    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=_new_id)
    business_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(16), nullable=False, default="promotion")
    name = Column(String(255), nullable=False, default="")

    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    capacity_limit = Column(Integer, nullable=True)
    ticket_types = Column(JSON, nullable=False, default=list)

    codes = Column(JSON, nullable=False, default=list)

    created_at = Column(UTCDateTime(), nullable=False, default=_utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
