import json
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db, Notification, User
from devices import deactivate_all, register_device
from errors import NotFound
from schemas import DeviceTokenOut, DeviceTokenRegister, NotificationOut

notification_router = APIRouter()


def _decode(notification: Notification) -> NotificationOut:
    out = NotificationOut.model_validate(notification)
    out.data = json.loads(notification.data) if notification.data else None
    return out


def _own_notification(db: Session, notification_id: int, user: User) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user.id)
        .first()
    )
    if not notification:
        raise NotFound("Notification not found", notification_id=notification_id)
    return notification


@notification_router.post("/register-token", response_model=DeviceTokenOut)
async def register_token(
    registration: DeviceTokenRegister,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    metadata = registration.model_dump(exclude={"device_token"})
    return register_device(db, current_user.id, registration.device_token, metadata)


@notification_router.post("/logout")
async def logout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = deactivate_all(db, current_user.id)
    return {"status": "success", "message": "Device tokens deactivated", "deactivated": count}


@notification_router.get("")
async def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[str] = None,
    is_read: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if type:
        query = query.filter(Notification.type == type)
    if is_read is not None:
        query = query.filter(Notification.is_read.is_(is_read))

    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "status": "success",
        "data": [_decode(n) for n in notifications],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@notification_router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .count()
    )
    return {"status": "success", "data": {"count": count}}


@notification_router.patch("/mark-all-read")
async def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db.query(Notification).filter(
        Notification.user_id == current_user.id, Notification.is_read.is_(False)
    ).update(
        {Notification.is_read: True, Notification.read_at: datetime.utcnow()},
        synchronize_session=False,
    )
    db.commit()
    return {"status": "success", "message": "All notifications marked as read"}


@notification_router.patch("/{notification_id}/read")
async def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = _own_notification(db, notification_id, current_user)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        db.commit()
    return {"status": "success", "message": "Notification marked as read"}


@notification_router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = _own_notification(db, notification_id, current_user)
    db.delete(notification)
    db.commit()
    return {"message": "Notification deleted successfully"}
