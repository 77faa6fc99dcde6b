# models.py - Database models for the Task Sharing API
# - Integer primary keys
# - Users keyed by the identity provider's subject id
# - Tasks owned by exactly one user
# - Task shares cascade with their task

from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Integer, Enum as SQLEnum, ForeignKey, Text,
    Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Largest value an Integer primary key column can hold on PostgreSQL
MAX_ID = 2**31 - 1


def is_valid_id(value: int) -> bool:
    return 0 < value <= MAX_ID


# ============================================================
# ENUMS
# ============================================================

class TaskStatus(str, PyEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SharePermission(str, PyEnum):
    VIEW = "view"
    EDIT = "edit"


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, nullable=False, index=True)
    display_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    owned_tasks = relationship("Task", back_populates="owner")
    received_shares = relationship("TaskShare", back_populates="shared_with")


# ============================================================
# TASKS
# ============================================================

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        SQLEnum(TaskStatus, name="task_status", values_callable=_enum_values),
        default=TaskStatus.TODO,
        nullable=False,
    )
    priority = Column(
        SQLEnum(TaskPriority, name="task_priority", values_callable=_enum_values),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )
    due_date = Column(DateTime(timezone=True), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="owned_tasks")
    shares = relationship(
        "TaskShare",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskShare.id",
    )

    __table_args__ = (
        Index("idx_task_owner_created", "owner_id", "created_at"),
    )


class TaskShare(Base):
    """Grants one user access to another user's task"""
    __tablename__ = "task_shares"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    permission = Column(
        SQLEnum(SharePermission, name="share_permission", values_callable=_enum_values),
        default=SharePermission.VIEW,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    task = relationship("Task", back_populates="shares")
    shared_with = relationship("User", back_populates="received_shares")

    __table_args__ = (
        UniqueConstraint("task_id", "shared_with_id", name="uq_task_share_recipient"),
    )
