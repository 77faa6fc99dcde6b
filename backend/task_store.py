# task_store.py - Owner-scoped task persistence
from typing import Optional, List

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from errors import NotFoundOrForbidden
from models import Task, TaskShare, is_valid_id, utcnow
from schemas import TaskCreate, TaskOut, task_to_out

UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


def _with_owner_and_shares(stmt):
    return stmt.options(
        selectinload(Task.owner),
        selectinload(Task.shares).selectinload(TaskShare.shared_with),
    ).execution_options(populate_existing=True)


class TaskStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner_id: int, data: TaskCreate) -> TaskOut:
        """Insert a task for owner_id; the owner never comes from the request body."""
        now = utcnow()
        task = Task(
            title=data.title,
            description=data.description,
            status=data.status,
            priority=data.priority,
            due_date=data.due_date,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(task)
        await self.db.commit()
        return await self.get_by_id(task.id)

    async def get_by_id(self, task_id: int) -> Optional[TaskOut]:
        if not is_valid_id(task_id):
            return None
        stmt = _with_owner_and_shares(select(Task).where(Task.id == task_id))
        result = await self.db.execute(stmt)
        task = result.scalar_one_or_none()
        return task_to_out(task) if task else None

    async def list_for_owner(self, user_id: int, search: Optional[str] = None) -> List[TaskOut]:
        """Tasks owned by user_id, newest first, optionally filtered by a search term"""
        stmt = select(Task).where(Task.owner_id == user_id)
        if search:
            stmt = stmt.where(
                or_(
                    Task.title.icontains(search, autoescape=True),
                    Task.description.icontains(search, autoescape=True),
                )
            )
        stmt = _with_owner_and_shares(stmt.order_by(Task.created_at.desc(), Task.id.desc()))

        result = await self.db.execute(stmt)
        return [task_to_out(t) for t in result.scalars().unique().all()]

    async def update(self, task_id: int, user_id: int, patch: dict) -> TaskOut:
        stmt = select(Task).where(Task.id == task_id, Task.owner_id == user_id)
        result = await self.db.execute(stmt)
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundOrForbidden()

        for name in UPDATABLE_FIELDS:
            if name in patch:
                setattr(task, name, patch[name])
        task.updated_at = utcnow()

        await self.db.commit()
        return await self.get_by_id(task_id)

    async def delete(self, task_id: int, user_id: int) -> bool:
        stmt = (
            select(Task)
            .where(Task.id == task_id, Task.owner_id == user_id)
            .options(selectinload(Task.shares))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        task = result.scalar_one_or_none()
        if task is None:
            return False

        await self.db.delete(task)
        await self.db.commit()
        return True
