from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .extensions import db
from .roles import Role


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_session_uid() -> str:
    return str(uuid.uuid4())


class SeanceStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REPORTED = "REPORTED"
    CANCELLED = "CANCELLED"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    EXCUSED = "EXCUSED"

    @property
    def attended(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.EXCUSED)


class ReportStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class NotificationType(str, Enum):
    SEANCE_ASSIGNED = "SEANCE_ASSIGNED"
    SEANCE_UPDATED = "SEANCE_UPDATED"
    SEANCE_CANCELLED = "SEANCE_CANCELLED"
    SEANCE_REPORTED = "SEANCE_REPORTED"


def _values(enum_cls: type[Enum]) -> str:
    return ",".join(f"'{member.value}'" for member in enum_cls)


group_student = Table(
    "group_student",
    db.Model.metadata,
    Column("group_id", ForeignKey("student_group.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", ForeignKey("student.id", ondelete="CASCADE"), primary_key=True),
)


class TimeStampedModel:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class User(db.Model, TimeStampedModel):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.TRAINER.value)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    seances: Mapped[List["Seance"]] = relationship(back_populates="trainer")
    notifications: Mapped[List["Notification"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(f"role IN ({_values(Role)})", name="chk_user_role"),
    )

    @property
    def role_kind(self) -> Role:
        return Role(self.role)

    @property
    def is_trainer(self) -> bool:
        return self.role_kind is Role.TRAINER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"User<{self.email} {self.role}>"


class Training(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=24)

    levels: Mapped[List["Level"]] = relationship(
        back_populates="training",
        cascade="all, delete-orphan",
        order_by="Level.level_number",
    )
    groups: Mapped[List["Group"]] = relationship(
        back_populates="training", cascade="all, delete-orphan"
    )
    enrollments: Mapped[List["Enrollment"]] = relationship(
        back_populates="training", cascade="all, delete-orphan"
    )
    seances: Mapped[List["Seance"]] = relationship(
        back_populates="training", cascade="all, delete-orphan"
    )

    def level(self, level_number: int) -> Optional["Level"]:
        return next((lvl for lvl in self.levels if lvl.level_number == level_number), None)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Training<{self.title}>"


class Level(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    training_id: Mapped[int] = mapped_column(
        ForeignKey("training.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(120), nullable=False)

    training: Mapped[Training] = relationship(back_populates="levels")
    sessions: Mapped[List["TrainingSession"]] = relationship(
        back_populates="level",
        cascade="all, delete-orphan",
        order_by="TrainingSession.session_number",
    )

    __table_args__ = (
        UniqueConstraint("training_id", "level_number", name="uq_level_number"),
        CheckConstraint("level_number >= 1", name="chk_level_number_positive"),
    )


class TrainingSession(db.Model):
    """Session template inside a level, not a calendar event."""

    id: Mapped[int] = mapped_column(primary_key=True)
    level_id: Mapped[int] = mapped_column(
        ForeignKey("level.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    session_uid: Mapped[str] = mapped_column(
        String(36), nullable=False, unique=True, default=new_session_uid
    )

    level: Mapped[Level] = relationship(back_populates="sessions")

    __table_args__ = (
        UniqueConstraint("level_id", "session_number", name="uq_session_number"),
        CheckConstraint("session_number >= 1", name="chk_session_number_positive"),
    )


class Student(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))

    groups: Mapped[List["Group"]] = relationship(
        secondary=group_student, back_populates="students"
    )
    enrollments: Mapped[List["Enrollment"]] = relationship(
        back_populates="student", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Student<{self.display_name}>"


class Group(db.Model, TimeStampedModel):
    __tablename__ = "student_group"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    training_id: Mapped[int] = mapped_column(
        ForeignKey("training.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[Optional[int]] = mapped_column(Integer)
    start_time: Mapped[Optional[time]] = mapped_column(Time)
    end_time: Mapped[Optional[time]] = mapped_column(Time)
    trainer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))

    training: Mapped[Training] = relationship(back_populates="groups")
    trainer: Mapped[Optional[User]] = relationship()
    students: Mapped[List[Student]] = relationship(
        secondary=group_student,
        back_populates="groups",
        order_by="Student.last_name",
    )
    seances: Mapped[List["Seance"]] = relationship(
        back_populates="group", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_group_weekday"),
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Group<{self.name}>"


class Enrollment(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(
        ForeignKey("student.id", ondelete="CASCADE"), nullable=False, index=True
    )
    training_id: Mapped[int] = mapped_column(
        ForeignKey("training.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("student_group.id", ondelete="SET NULL"), index=True
    )
    enrolled_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    student: Mapped[Student] = relationship(back_populates="enrollments")
    training: Mapped[Training] = relationship(back_populates="enrollments")
    group: Mapped[Optional[Group]] = relationship()
    records: Mapped[List["AttendanceRecord"]] = relationship(
        back_populates="enrollment", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("student_id", "training_id", name="uq_enrollment_student_training"),
    )


class AttendanceRecord(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    enrollment_id: Mapped[int] = mapped_column(
        ForeignKey("enrollment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level_number: Mapped[int] = mapped_column(Integer, nullable=False)
    session_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    marked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    marked_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))

    enrollment: Mapped[Enrollment] = relationship(back_populates="records")

    __table_args__ = (
        UniqueConstraint(
            "enrollment_id",
            "level_number",
            "session_number",
            name="uq_attendance_enrollment_session",
        ),
        CheckConstraint(f"status IN ({_values(AttendanceStatus)})", name="chk_attendance_status"),
    )

    @property
    def status_kind(self) -> AttendanceStatus:
        return AttendanceStatus(self.status)


class Seance(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    training_id: Mapped[int] = mapped_column(
        ForeignKey("training.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("student_group.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trainer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    level_number: Mapped[int] = mapped_column(Integer, nullable=False)
    session_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SeanceStatus.PLANNED.value
    )

    training: Mapped[Training] = relationship(back_populates="seances")
    group: Mapped[Group] = relationship(back_populates="seances")
    trainer: Mapped[User] = relationship(back_populates="seances")
    reports: Mapped[List["SessionReport"]] = relationship(
        back_populates="seance",
        cascade="all, delete-orphan",
        order_by="SessionReport.created_at",
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="chk_seance_time_order"),
        CheckConstraint(f"status IN ({_values(SeanceStatus)})", name="chk_seance_status"),
        Index("ix_seance_trainer_date", "trainer_id", "date"),
    )

    @property
    def status_kind(self) -> SeanceStatus:
        return SeanceStatus(self.status)

    def scheduled_start(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    def window_payload(self) -> dict[str, object]:
        return {
            "seanceId": self.id,
            "title": self.title,
            "date": self.date.isoformat(),
            "startTime": self.start_time.strftime("%H:%M"),
            "endTime": self.end_time.strftime("%H:%M"),
        }

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Seance<{self.title} {self.date} {self.start_time}-{self.end_time} {self.status}>"


class SessionReport(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    seance_id: Mapped[int] = mapped_column(
        ForeignKey("seance.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trainer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    suggested_date: Mapped[Optional[date]] = mapped_column(Date)
    report_status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=ReportStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    seance: Mapped[Seance] = relationship(back_populates="reports")
    trainer: Mapped[User] = relationship()


class Notification(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user: Mapped[User] = relationship(back_populates="notifications")
