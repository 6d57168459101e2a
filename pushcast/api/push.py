"""
Web Push subscription management and broadcast.

GET    /push/vapid-public-key          — VAPID public key for client subscription
POST   /push/subscribe                 — upsert the current user's subscription
DELETE /push/unsubscribe               — remove the current user's subscription
GET    /push/status                    — whether the current user has a stored subscription
POST   /push/send                      — admin: fan a notification out to subscribers
DELETE /push/subscriptions/{user_id}   — admin: remove a user's subscription
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from pushcast.api.deps import get_current_user, get_dispatcher, get_notification_log, get_subscription_store, require_admin
from pushcast.config import settings
from pushcast.core.errors import PersistenceError
from pushcast.models.user import User
from pushcast.schemas.push import (
    BroadcastRequest,
    BroadcastResponse,
    SubscribeResponse,
    SubscriptionDescriptor,
)
from pushcast.services.notification_log import NotificationLog
from pushcast.services.push_service import BroadcastDispatcher
from pushcast.services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["push"])


@router.get("/vapid-public-key")
async def get_vapid_public_key() -> dict:
    """Return the VAPID public key so the client can subscribe."""
    return {"key": settings.VAPID_PUBLIC_KEY}


@router.post("/subscribe", response_model=SubscribeResponse)
def subscribe(
    data: SubscriptionDescriptor,
    current_user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    """Upsert the push subscription for the current user. Replaces any previous one."""
    row = store.upsert(current_user.id, data)
    return SubscribeResponse(status="subscribed", updated_at=row.updated_at if row else None)


@router.delete("/unsubscribe")
def unsubscribe(
    current_user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> dict:
    removed = store.delete(current_user.id)
    return {"status": "unsubscribed", "removed": removed}


@router.get("/status")
def subscription_status(
    current_user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> dict:
    return {"subscribed": store.get(current_user.id) is not None}


@router.post("/send", response_model=BroadcastResponse)
def send_notification(
    data: BroadcastRequest,
    admin: User = Depends(require_admin),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
    log: NotificationLog = Depends(get_notification_log),
):
    """
    Deliver a notification to every subscriber, or only to userIds.
    Per-recipient failures are counted, never raised.
    """
    result = dispatcher.dispatch(data.payload, data.user_ids)
    try:
        log.record(data.payload, result, created_by=admin.id)
    except PersistenceError as exc:
        # Delivery already happened; the audit row is best effort.
        logger.warning("Broadcast delivered but not recorded: %s", exc)
    return BroadcastResponse(sent=result.sent, failed=result.failed)


@router.delete("/subscriptions/{user_id}")
def remove_user_subscription(
    user_id: int,
    admin: User = Depends(require_admin),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> dict:
    """Administrator cleanup of a user's subscription."""
    if not store.delete(user_id):
        raise HTTPException(status_code=404, detail="Subscription not found")
    logger.info("Admin %s removed push subscription of user %s", admin.id, user_id)
    return {"status": "removed", "user_id": user_id}
