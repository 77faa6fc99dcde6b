# directory.py - Local user records keyed by identity-provider subject id
import logging
import time
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import NotFoundError
from models import User

logger = logging.getLogger("taskshare.directory")

PLACEHOLDER_PREFIX = "placeholder_"


def placeholder_subject_id(email: str) -> str:
    """Synthetic subject id for someone who has not signed in yet"""
    return f"{PLACEHOLDER_PREFIX}{int(time.time() * 1000)}_{email}"


def is_placeholder(user: User) -> bool:
    return user.subject_id.startswith(PLACEHOLDER_PREFIX)


class UserDirectory:
    """Maps verified identities to local users, provisioning them on first sight."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_subject(self, subject_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.subject_id == subject_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = (
            select(User)
            .where(func.lower(User.email) == email.lower())
            .order_by(User.id.asc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _insert(self, subject_id: str, email: str, display_name: Optional[str]) -> User:
        user = User(subject_id=subject_id, email=email, display_name=display_name or None)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def resolve_or_create(
        self, subject_id: str, email: str, display_name: Optional[str] = None,
    ) -> User:
        user = await self.get_by_subject(subject_id)
        if user:
            return user

        try:
            user = await self._insert(subject_id, email, display_name)
        except IntegrityError:
            # Another request provisioned the same subject first
            await self.db.rollback()
            user = await self.get_by_subject(subject_id)
            if user is None:
                raise
            return user

        logger.info(f"Provisioned user {user.id} for subject {subject_id[:8]}…")
        return user

    async def provision_placeholder(self, email: str) -> User:
        user = await self._insert(placeholder_subject_id(email), email, None)
        logger.info(f"Provisioned placeholder user {user.id} for {email}")
        return user

    async def update_display_name(self, user_id: int, display_name: Optional[str]) -> User:
        user = await self.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.display_name = display_name or None
        await self.db.commit()
        await self.db.refresh(user)
        return user
