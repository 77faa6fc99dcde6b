# schemas.py - Request/response models (camelCase on the wire)
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models import Task, TaskShare, User, TaskStatus, TaskPriority, SharePermission


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _normalize_status(value):
    # Older clients send "inprogress"
    if isinstance(value, str) and value.lower() == "inprogress":
        return TaskStatus.IN_PROGRESS.value
    return value


# --- User ---

class UserOut(CamelModel):
    id: int
    email: str
    display_name: Optional[str] = None
    created_at: datetime


class UserUpdate(CamelModel):
    display_name: Optional[str] = Field(default=None, max_length=100)


# --- Share ---

class ShareOut(CamelModel):
    id: int
    task_id: int
    shared_with_id: int
    permission: SharePermission
    created_at: datetime
    shared_with: Optional[UserOut] = None


class ShareCreate(CamelModel):
    task_id: int
    email: EmailStr
    permission: SharePermission = SharePermission.VIEW


# --- Task ---

class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return _normalize_status(value)


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return _normalize_status(value)

    @model_validator(mode="after")
    def check_required_fields(self):
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def patch(self) -> dict:
        """Only the fields the client actually sent"""
        return self.model_dump(exclude_unset=True)


class TaskOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    owner_id: int
    created_at: datetime
    updated_at: datetime
    owner: UserOut
    shares: List[ShareOut] = []


# ============================================================
# CONVERTERS
# ============================================================

def user_to_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        created_at=user.created_at,
    )


def share_to_out(share: TaskShare) -> ShareOut:
    return ShareOut(
        id=share.id,
        task_id=share.task_id,
        shared_with_id=share.shared_with_id,
        permission=share.permission,
        created_at=share.created_at,
        shared_with=user_to_out(share.shared_with) if share.shared_with else None,
    )


def task_to_out(task: Task, with_shares: bool = True) -> TaskOut:
    """Expects owner (and shares, when requested) to be eagerly loaded."""
    return TaskOut(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        owner_id=task.owner_id,
        created_at=task.created_at,
        updated_at=task.updated_at,
        owner=user_to_out(task.owner),
        shares=[share_to_out(s) for s in task.shares] if with_shares else [],
    )
