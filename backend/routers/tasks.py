# routers/tasks.py - Personal tasks and task sharing
import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

import access
from auth import get_current_user
from database import get_db_session
from directory import UserDirectory
from errors import ConflictError, NotFoundError
from events import EventPublisher, TaskEvent, TaskEventType
from schemas import ShareCreate, ShareOut, TaskCreate, TaskOut, TaskUpdate, UserOut
from sharing import SharingLedger
from task_store import TaskStore

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])
logger = logging.getLogger("taskshare.tasks")


# ============================================================
# DEPENDENCIES
# ============================================================

def get_task_store(db: AsyncSession = Depends(get_db_session)) -> TaskStore:
    return TaskStore(db)


def get_sharing_ledger(db: AsyncSession = Depends(get_db_session)) -> SharingLedger:
    return SharingLedger(db)


def get_user_directory(db: AsyncSession = Depends(get_db_session)) -> UserDirectory:
    return UserDirectory(db)


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


# ============================================================
# TASK ENDPOINTS
# ============================================================

@router.get("", response_model=List[TaskOut])
async def list_tasks(
    search: Optional[str] = Query(default=None),
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    ledger: SharingLedger = Depends(get_sharing_ledger),
):
    """Tasks the user owns (filtered by search) followed by tasks shared with them"""
    owned = await store.list_for_owner(user.id, search)
    shared = await ledger.list_for_recipient(user.id)
    return owned + shared


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    data: TaskCreate,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    task = await store.create(user.id, data)
    await publisher.publish(TaskEvent(
        TaskEventType.TASK_CREATED, user.id, task.id,
        payload={"task": task.model_dump(mode="json", by_alias=True)},
    ))
    return task


@router.post("/share", response_model=ShareOut, status_code=201)
async def share_task(
    data: ShareCreate,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    ledger: SharingLedger = Depends(get_sharing_ledger),
    directory: UserDirectory = Depends(get_user_directory),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """Share an owned task with someone by email, provisioning a placeholder if needed"""
    task = await store.get_by_id(data.task_id)
    access.ensure_owner(task, user.id, "You can only share tasks you own")

    recipient = await directory.get_by_email(data.email)
    if recipient is None:
        recipient = await directory.provision_placeholder(data.email)
    recipient_id = recipient.id

    existing = await ledger.list_for_task(data.task_id)
    if any(s.shared_with_id == recipient_id for s in existing):
        raise ConflictError("Task is already shared with this user")

    share = await ledger.share(data.task_id, recipient_id, data.permission)
    logger.info(f"Task {data.task_id} shared with user {recipient_id} ({data.permission.value})")

    await publisher.publish(TaskEvent(
        TaskEventType.TASK_SHARED, user.id, data.task_id,
        payload={
            "taskShare": share.model_dump(mode="json", by_alias=True),
            "sharedWithEmail": data.email,
        },
    ))
    return share


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: int,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    task = await store.get_by_id(task_id)
    return access.ensure_can_view(task, user.id)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """Partial update; owner only, checked here and again by the store"""
    access.ensure_can_modify(await store.get_by_id(task_id), user.id)

    task = await store.update(task_id, user.id, data.patch())
    await publisher.publish(TaskEvent(
        TaskEventType.TASK_UPDATED, user.id, task.id,
        payload={"task": task.model_dump(mode="json", by_alias=True)},
    ))
    return task


@router.delete("/{task_id}", status_code=204, response_class=Response)
async def delete_task(
    task_id: int,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    access.ensure_can_modify(await store.get_by_id(task_id), user.id)

    if not await store.delete(task_id, user.id):
        raise NotFoundError("Task not found or access denied")

    await publisher.publish(TaskEvent(TaskEventType.TASK_DELETED, user.id, task_id))
    return Response(status_code=204)


# ============================================================
# SHARE ENDPOINTS
# ============================================================

@router.get("/{task_id}/shares", response_model=List[ShareOut])
async def list_task_shares(
    task_id: int,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    ledger: SharingLedger = Depends(get_sharing_ledger),
):
    access.ensure_owner(await store.get_by_id(task_id), user.id)
    return await ledger.list_for_task(task_id)


@router.delete("/{task_id}/shares/{user_id}", status_code=204, response_class=Response)
async def remove_task_share(
    task_id: int,
    user_id: int,
    user: UserOut = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    ledger: SharingLedger = Depends(get_sharing_ledger),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    access.ensure_owner(await store.get_by_id(task_id), user.id)

    if not await ledger.remove(task_id, user_id):
        raise NotFoundError("Share not found")

    await publisher.publish(TaskEvent(
        TaskEventType.TASK_UNSHARED, user.id, task_id,
        payload={"sharedWithId": user_id},
    ))
    return Response(status_code=204)
