"""Initial planning schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("role IN ('ADMIN','MANAGER','TRAINER')", name="chk_user_role"),
    )

    op.create_table(
        "training",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("total_sessions", sa.Integer(), nullable=False, server_default="24"),
        *_timestamps(),
    )
    op.create_index("ix_training_title", "training", ["title"])

    op.create_table(
        "level",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("training_id", sa.Integer(), sa.ForeignKey("training.id", ondelete="CASCADE"), nullable=False),
        sa.Column("level_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.UniqueConstraint("training_id", "level_number", name="uq_level_number"),
        sa.CheckConstraint("level_number >= 1", name="chk_level_number_positive"),
    )
    op.create_index("ix_level_training_id", "level", ["training_id"])

    op.create_table(
        "training_session",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("level_id", sa.Integer(), sa.ForeignKey("level.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("session_uid", sa.String(length=36), nullable=False, unique=True),
        sa.UniqueConstraint("level_id", "session_number", name="uq_session_number"),
        sa.CheckConstraint("session_number >= 1", name="chk_session_number_positive"),
    )
    op.create_index("ix_training_session_level_id", "training_session", ["level_id"])

    op.create_table(
        "student",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column("phone", sa.String(length=50)),
        *_timestamps(),
    )

    op.create_table(
        "student_group",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("training_id", sa.Integer(), sa.ForeignKey("training.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.Integer()),
        sa.Column("start_time", sa.Time()),
        sa.Column("end_time", sa.Time()),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        *_timestamps(),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_group_weekday"),
    )
    op.create_index("ix_student_group_training_id", "student_group", ["training_id"])

    op.create_table(
        "group_student",
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("student_group.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("student.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "enrollment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("student.id", ondelete="CASCADE"), nullable=False),
        sa.Column("training_id", sa.Integer(), sa.ForeignKey("training.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("student_group.id", ondelete="SET NULL")),
        sa.Column("enrolled_at", sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "training_id", name="uq_enrollment_student_training"),
    )
    op.create_index("ix_enrollment_student_id", "enrollment", ["student_id"])
    op.create_index("ix_enrollment_training_id", "enrollment", ["training_id"])
    op.create_index("ix_enrollment_group_id", "enrollment", ["group_id"])

    op.create_table(
        "attendance_record",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enrollment_id", sa.Integer(), sa.ForeignKey("enrollment.id", ondelete="CASCADE"), nullable=False),
        sa.Column("level_number", sa.Integer(), nullable=False),
        sa.Column("session_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("marked_at", sa.DateTime(), nullable=False),
        sa.Column("marked_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.UniqueConstraint(
            "enrollment_id", "level_number", "session_number", name="uq_attendance_enrollment_session"
        ),
        sa.CheckConstraint("status IN ('PRESENT','ABSENT','EXCUSED')", name="chk_attendance_status"),
    )
    op.create_index("ix_attendance_record_enrollment_id", "attendance_record", ["enrollment_id"])

    op.create_table(
        "seance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("training_id", sa.Integer(), sa.ForeignKey("training.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("student_group.id", ondelete="CASCADE"), nullable=False),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("level_number", sa.Integer(), nullable=False),
        sa.Column("session_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PLANNED"),
        *_timestamps(),
        sa.CheckConstraint("end_time > start_time", name="chk_seance_time_order"),
        sa.CheckConstraint(
            "status IN ('PLANNED','IN_PROGRESS','COMPLETED','REPORTED','CANCELLED')",
            name="chk_seance_status",
        ),
    )
    op.create_index("ix_seance_training_id", "seance", ["training_id"])
    op.create_index("ix_seance_session_id", "seance", ["session_id"])
    op.create_index("ix_seance_group_id", "seance", ["group_id"])
    op.create_index("ix_seance_trainer_date", "seance", ["trainer_id", "date"])

    op.create_table(
        "session_report",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seance_id", sa.Integer(), sa.ForeignKey("seance.id", ondelete="CASCADE"), nullable=False),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("suggested_date", sa.Date()),
        sa.Column("report_status", sa.String(length=10), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_session_report_seance_id", "session_report", ["seance_id"])
    op.create_index("ix_session_report_trainer_id", "session_report", ["trainer_id"])

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=255)),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notification_user_id", "notification", ["user_id"])


def downgrade() -> None:
    op.drop_table("notification")
    op.drop_table("session_report")
    op.drop_table("seance")
    op.drop_table("attendance_record")
    op.drop_table("enrollment")
    op.drop_table("group_student")
    op.drop_table("student_group")
    op.drop_table("student")
    op.drop_table("training_session")
    op.drop_table("level")
    op.drop_table("training")
    op.drop_table("users")
