# sharing.py - Ledger of which users can see which tasks
import logging
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from errors import ConflictError
from models import Task, TaskShare, SharePermission, is_valid_id
from schemas import ShareOut, TaskOut, share_to_out, task_to_out

logger = logging.getLogger("taskshare.sharing")


class SharingLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def share(
        self, task_id: int, recipient_id: int,
        permission: SharePermission = SharePermission.VIEW,
    ) -> ShareOut:
        """Record a share edge. Callers check ownership and existing shares first."""
        share = TaskShare(task_id=task_id, shared_with_id=recipient_id, permission=permission)
        self.db.add(share)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_duplicate_share(e):
                raise
            raise ConflictError("Task is already shared with this user")

        stmt = (
            select(TaskShare)
            .where(TaskShare.id == share.id)
            .options(selectinload(TaskShare.shared_with))
        )
        result = await self.db.execute(stmt)
        return share_to_out(result.scalar_one())

    async def list_for_task(self, task_id: int) -> List[ShareOut]:
        stmt = (
            select(TaskShare)
            .where(TaskShare.task_id == task_id)
            .options(selectinload(TaskShare.shared_with))
            .order_by(TaskShare.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [share_to_out(s) for s in result.scalars().all()]

    async def remove(self, task_id: int, recipient_id: int) -> bool:
        if not (is_valid_id(task_id) and is_valid_id(recipient_id)):
            return False
        stmt = delete(TaskShare).where(
            TaskShare.task_id == task_id,
            TaskShare.shared_with_id == recipient_id,
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return (result.rowcount or 0) > 0

    async def list_for_recipient(self, user_id: int) -> List[TaskOut]:
        """Tasks shared to user_id, newest first. Share lists are not populated."""
        stmt = (
            select(Task)
            .join(TaskShare, TaskShare.task_id == Task.id)
            .where(TaskShare.shared_with_id == user_id)
            .options(selectinload(Task.owner))
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        result = await self.db.execute(stmt)
        return [task_to_out(t, with_shares=False) for t in result.scalars().unique().all()]


def _is_duplicate_share(exc: IntegrityError) -> bool:
    # PostgreSQL names the constraint; SQLite lists the constrained columns
    message = str(exc.orig)
    return (
        "uq_task_share_recipient" in message
        or "UNIQUE constraint failed: task_shares.task_id, task_shares.shared_with_id" in message
    )
