"""SQLAlchemy table definitions.

Repos convert between these rows and the dataclasses in
completion/models/.  Timestamps are unix seconds stored as integers.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from completion.db.engine import Base

# --- Courses and enrolments (owned by the host LMS, read-only here) ---


class CourseRow(Base):
    __tablename__ = "course"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fullname: Mapped[str] = mapped_column(String(254), nullable=False, default="")
    enable_completion: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    completion_start_on_enrol: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )


class EnrolRow(Base):
    """An enrolment instance (manual, self, cohort...) attached to a course."""

    __tablename__ = "enrol"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course.id"), nullable=False
    )
    enrol: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
    status: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=0
    )  # 0 enabled, 1 disabled


class UserEnrolmentRow(Base):
    __tablename__ = "user_enrolments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    enrol_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("enrol.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=0
    )  # 0 active, 1 suspended
    time_start: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_end: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("enrol_id", "user_id"),)


# --- Completion criteria configuration ---


class CompletionCriteriaRow(Base):
    __tablename__ = "course_completion_criteria"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course.id"), nullable=False
    )
    criterion_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    module_instance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    course_instance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    role: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class AggregationMethodRow(Base):
    """Aggregation method per criterion type.

    A NULL criterion_type holds the course's overall method.
    """

    __tablename__ = "course_completion_aggr_methd"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course.id"), nullable=False
    )
    criterion_type: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    method: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)

    __table_args__ = (UniqueConstraint("course_id", "criterion_type"),)


class CriteriaCompletionRow(Base):
    __tablename__ = "course_completion_crit_compl"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course.id"), nullable=False
    )
    criteria_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course_completion_criteria.id"), nullable=False
    )
    time_completed: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "course_id", "criteria_id"),)


# --- Course completions (owned by this service) ---


class CourseCompletionRow(Base):
    __tablename__ = "course_completions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course.id"), nullable=False
    )
    time_enrolled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_started: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_completed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reaggregate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id"),
        Index("ix_course_completions_reaggregate", "reaggregate"),
    )
