"""
SQLAlchemy ORM models for the trace database.

Defines the tables the overlap analysis reads and writes:
- Execution traces (view executions, form startups)
- Derived overlap metrics per execution
- Active execution count timeline
"""

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from overlapscope.constants import (
    TABLE_ACTIVE_QUERY_COUNT,
    TABLE_EXECUTION_OVERLAP,
    TABLE_EXECUTIONS,
    TABLE_FORM_STARTUP,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


class Execution(Base):
    """One view execution. Timestamps and durations are nanoseconds."""

    __tablename__ = TABLE_EXECUTIONS

    timestamp: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    ordinal: Mapped[int] = mapped_column(Integer, primary_key=True)
    wallclock_time_ns: Mapped[int] = mapped_column(BigInteger)
    view_id: Mapped[int | None] = mapped_column(Integer, index=True)
    form_id: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        CheckConstraint("wallclock_time_ns >= 0", name="chk_execution_duration"),
    )

    def __repr__(self) -> str:
        return f"<Execution(timestamp={self.timestamp}, ordinal={self.ordinal}, view_id={self.view_id})>"


class FormStartup(Base):
    """Startup of a form widget."""

    __tablename__ = TABLE_FORM_STARTUP

    timestamp: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    ordinal: Mapped[int] = mapped_column(Integer, primary_key=True)
    wallclock_time_ns: Mapped[int] = mapped_column(BigInteger)
    form_id: Mapped[int | None] = mapped_column(Integer, index=True)

    def __repr__(self) -> str:
        return f"<FormStartup(timestamp={self.timestamp}, ordinal={self.ordinal}, form_id={self.form_id})>"


class ExecutionOverlap(Base):
    """Overlap of one execution with all executions running concurrently with it."""

    __tablename__ = TABLE_EXECUTION_OVERLAP

    timestamp: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    ordinal: Mapped[int] = mapped_column(Integer, primary_key=True)
    overlap: Mapped[int] = mapped_column(BigInteger)
    overlap_count: Mapped[int] = mapped_column(Integer)

    __table_args__ = (
        CheckConstraint("overlap >= 0", name="chk_overlap"),
        CheckConstraint("overlap_count >= 0", name="chk_overlap_count"),
    )

    def __repr__(self) -> str:
        return f"<ExecutionOverlap(timestamp={self.timestamp}, ordinal={self.ordinal}, overlap={self.overlap})>"


class ActiveQueryCount(Base):
    """Number of executions running right after an execution starts or ends."""

    __tablename__ = TABLE_ACTIVE_QUERY_COUNT

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[int] = mapped_column(BigInteger)
    count: Mapped[int] = mapped_column(Integer)

    __table_args__ = (Index("idx_active_query_count_timestamp", "timestamp"),)

    def __repr__(self) -> str:
        return f"<ActiveQueryCount(timestamp={self.timestamp}, count={self.count})>"
