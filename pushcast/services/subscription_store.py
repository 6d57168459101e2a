"""
Subscription Store — one push descriptor per user.

Backed by the push_subscriptions table. Writes are single statements so a
concurrent re-subscribe and a read-for-delivery never observe a half-written
descriptor:

- upsert  -> INSERT ... ON CONFLICT (user_id) DO UPDATE
- delete  -> DELETE WHERE user_id = ?
- list    -> SELECT (optionally filtered by user_id IN (...))
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pushcast.core.errors import PersistenceError, StoreUnavailable
from pushcast.models.push_subscription import PushSubscription
from pushcast.schemas.push import SubscriptionDescriptor

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class SubscriptionStore:
    def __init__(self, db: Session):
        self.db = db

    def upsert(self, user_id: int, descriptor: SubscriptionDescriptor | Mapping) -> PushSubscription:
        """Create or replace the descriptor for user_id."""
        data = descriptor.to_json() if isinstance(descriptor, SubscriptionDescriptor) else dict(descriptor)

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise PersistenceError(f"Upsert is not supported on the {dialect} dialect")

        stmt = insert(PushSubscription).values(
            user_id=user_id,
            subscription=data,
            updated_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "subscription": stmt.excluded.subscription,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        try:
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to save push subscription for user %s: %s", user_id, exc)
            raise PersistenceError(f"Failed to save push subscription: {exc}") from exc

        logger.info("Saved push subscription for user %s", user_id)
        return self.get(user_id)

    def get(self, user_id: int) -> PushSubscription | None:
        try:
            return self.db.query(PushSubscription).filter_by(user_id=user_id).first()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to fetch subscriptions: {exc}") from exc

    def list(self, user_ids: Iterable[int] | None = None) -> list[PushSubscription]:
        """Every stored descriptor, or only those of user_ids when non-empty."""
        ids = list(user_ids) if user_ids is not None else []
        try:
            query = self.db.query(PushSubscription)
            if ids:
                query = query.filter(PushSubscription.user_id.in_(ids))
            return query.order_by(PushSubscription.id).all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to fetch subscriptions: {exc}") from exc

    def count(self) -> int:
        try:
            return self.db.query(PushSubscription).count()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Failed to fetch subscriptions: {exc}") from exc

    def delete(self, user_id: int) -> bool:
        """Remove the user's descriptor. Returns False when there was none."""
        try:
            removed = self.db.query(PushSubscription).filter_by(user_id=user_id).delete()
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to remove push subscription: {exc}") from exc
        return removed > 0

    def delete_stale(self, stale: Iterable[tuple[int, str]]) -> int:
        """
        Remove descriptors that still point at a dead endpoint.

        Each item is (user_id, endpoint). A row whose endpoint changed since
        the delivery attempt (the user re-subscribed meanwhile) is kept.
        """
        gone = dict(stale)
        if not gone:
            return 0
        try:
            rows = self.db.query(PushSubscription).filter(PushSubscription.user_id.in_(list(gone))).all()
            removed = 0
            for row in rows:
                if row.endpoint == gone[row.user_id]:
                    self.db.delete(row)
                    removed += 1
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"Failed to prune push subscriptions: {exc}") from exc
        return removed
