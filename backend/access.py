# access.py - Task authorization rules
from typing import Optional

from errors import AuthorizationError, NotFoundError
from schemas import TaskOut


def is_owner(task: TaskOut, user_id: int) -> bool:
    return task.owner_id == user_id


def is_recipient(task: TaskOut, user_id: int) -> bool:
    return any(share.shared_with_id == user_id for share in task.shares)


def can_view(task: TaskOut, user_id: int) -> bool:
    return is_owner(task, user_id) or is_recipient(task, user_id)


def ensure_found(task: Optional[TaskOut]) -> TaskOut:
    if task is None:
        raise NotFoundError("Task not found")
    return task


def ensure_can_view(task: Optional[TaskOut], user_id: int) -> TaskOut:
    task = ensure_found(task)
    if not can_view(task, user_id):
        raise AuthorizationError("Access denied")
    return task


def ensure_owner(task: Optional[TaskOut], user_id: int, detail: str = "Access denied") -> TaskOut:
    """Missing tasks are reported exactly like tasks owned by someone else."""
    if task is None or not is_owner(task, user_id):
        raise AuthorizationError(detail)
    return task


def ensure_can_modify(task: Optional[TaskOut], user_id: int) -> TaskOut:
    # Share permission ("edit") does not grant mutation rights
    task = ensure_found(task)
    if not is_owner(task, user_id):
        raise AuthorizationError("Only the task owner can modify this task")
    return task
