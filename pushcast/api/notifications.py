"""
Sent notification history — admin only.

GET  /notifications               — most recent broadcasts, newest first
POST /notifications/{id}/resend   — deliver a past notification again
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from pushcast.api.deps import get_dispatcher, get_notification_log, require_admin
from pushcast.core.errors import PersistenceError
from pushcast.models.user import User
from pushcast.schemas.push import BroadcastResponse, NotificationPayload, SentNotificationResponse
from pushcast.services.notification_log import NotificationLog
from pushcast.services.push_service import BroadcastDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[SentNotificationResponse])
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    admin: User = Depends(require_admin),
    log: NotificationLog = Depends(get_notification_log),
):
    return log.recent(limit)


@router.post("/{notification_id}/resend", response_model=BroadcastResponse)
def resend_notification(
    notification_id: int,
    admin: User = Depends(require_admin),
    log: NotificationLog = Depends(get_notification_log),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    entry = log.get(notification_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    payload = NotificationPayload(title=entry.title, body=entry.body, url=entry.url)
    result = dispatcher.dispatch(payload)
    try:
        log.record(payload, result, created_by=admin.id)
    except PersistenceError as exc:
        logger.warning("Resend of notification %s delivered but not recorded: %s", notification_id, exc)
    return BroadcastResponse(sent=result.sent, failed=result.failed)
