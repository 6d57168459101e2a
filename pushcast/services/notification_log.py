"""Audit trail of completed broadcasts, used by the admin list/resend endpoints."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pushcast.core.errors import PersistenceError
from pushcast.models.notification import SentNotification
from pushcast.schemas.push import NotificationPayload
from pushcast.services.push_service import BroadcastResult

logger = logging.getLogger(__name__)


class NotificationLog:
    def __init__(self, db: Session):
        self.db = db

    def record(self, payload: NotificationPayload, result: BroadcastResult, created_by: int | None) -> SentNotification:
        entry = SentNotification(
            title=payload.title,
            body=payload.body,
            url=payload.url,
            sent=result.sent,
            failed=result.failed,
            created_by=created_by,
        )
        try:
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to record notification: {exc}") from exc
        return entry

    def recent(self, limit: int = 50) -> list[SentNotification]:
        return (
            self.db.query(SentNotification)
            .order_by(SentNotification.created_at.desc(), SentNotification.id.desc())
            .limit(limit)
            .all()
        )

    def get(self, notification_id: int) -> SentNotification | None:
        return self.db.query(SentNotification).filter(SentNotification.id == notification_id).first()
