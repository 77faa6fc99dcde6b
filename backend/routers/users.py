# routers/users.py - The signed-in user's own profile
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from database import get_db_session
from directory import UserDirectory
from schemas import UserOut, UserUpdate, user_to_out

router = APIRouter(prefix="/api/user", tags=["Users"])


@router.get("", response_model=UserOut)
async def get_me(user: UserOut = Depends(get_current_user)):
    """Current user, provisioned on first sight"""
    return user


@router.patch("", response_model=UserOut)
async def update_me(
    update: UserUpdate,
    user: UserOut = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Change the display name; every other user field is immutable"""
    target = await UserDirectory(db).update_display_name(user.id, update.display_name)
    return user_to_out(target)
