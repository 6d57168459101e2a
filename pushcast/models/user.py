from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pushcast.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(50), nullable=True)

    # Always settings.SERVER_DOMAIN for users issued by this deployment.
    home_server = Column(String(255), nullable=False, index=True, server_default="local")

    is_active = Column(Boolean, default=True)
    # Set directly in the database, never via API. Gates /api/push/send and
    # the notification audit endpoints.
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    push_subscription = relationship(
        "PushSubscription",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    sent_notifications = relationship("SentNotification", back_populates="creator")
