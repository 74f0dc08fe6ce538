import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from models import Notification, User
from pagination import PageParams, paginate
from schemas import Message, NotificationOut, NotificationPage, ReadAllResponse, SubscribePayload
from storage import EmailSubscriber, StorageError, get_subscriber

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


def _own_notification(db: Session, notification_id: int, user: User) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != user.id:
        raise HTTPException(404, "Notification not found")
    return notification


@router.get("", response_model=NotificationPage)
def list_notifications(
    params: PageParams = Depends(),
    unread: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stmt = select(Notification).where(Notification.user_id == user.id)
    if unread:
        stmt = stmt.where(Notification.read.is_(False))
    rows, pagination = paginate(
        db, stmt.order_by(Notification.created_at.desc(), Notification.id.desc()), params, scalars=True
    )
    unread_count = db.execute(
        select(func.count()).select_from(Notification).where(
            Notification.user_id == user.id, Notification.read.is_(False)
        )
    ).scalar_one()
    return {
        "items": [NotificationOut.model_validate(n) for n in rows],
        "pagination": pagination,
        "unread_count": unread_count,
    }


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    notification = _own_notification(db, notification_id, user)
    if not notification.read:
        notification.read = True
        db.commit()
    return NotificationOut.model_validate(notification)


@router.post("/read-all", response_model=ReadAllResponse)
def mark_all_read(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.read.is_(False))
        .values(read=True)
    )
    db.commit()
    return {"updated": result.rowcount}


@router.delete("/{notification_id}", response_model=Message)
def delete_notification(notification_id: int, user: User = Depends(get_current_user),
                        db: Session = Depends(get_db)):
    db.delete(_own_notification(db, notification_id, user))
    db.commit()
    return {"message": "Notification deleted"}


@router.post("/subscribe", response_model=Message)
def subscribe(payload: SubscribePayload, subscriber: EmailSubscriber = Depends(get_subscriber)):
    try:
        subscriber.subscribe(payload.email)
    except StorageError as exc:
        logger.error("SNS subscription failed: %s", exc)
        raise HTTPException(502, "Failed to subscribe email")
    return {"message": "Subscription request sent. Check your email."}
