from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pushcast.database import Base


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    # One active descriptor per user; re-subscribing overwrites the row.
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    # {"endpoint": str, "expirationTime": int | None, "keys": {"p256dh": str, "auth": str}}
    subscription = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="push_subscription")

    @property
    def endpoint(self) -> str | None:
        if not isinstance(self.subscription, dict):
            return None
        return self.subscription.get("endpoint")
