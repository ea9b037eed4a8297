"""Notification feed: transient success/error messages for the front-end."""
from fastapi import APIRouter, Depends

from corpus_admin.dependencies import get_notifier
from corpus_admin.schemas.common import NotificationResponse
from corpus_admin.services.notifier import Notifier

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationResponse])
def drain_notifications(notifier: Notifier = Depends(get_notifier)):
    """Return pending notifications and clear the feed."""
    return [
        NotificationResponse(level=n.level, message=n.message, created_at=n.created_at)
        for n in notifier.drain()
    ]
