from datetime import datetime

from pydantic import BaseModel, Field

TITLE_MAX_LENGTH = 100
BODY_MAX_LENGTH = 1000


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)  # Client public key
    auth: str = Field(..., min_length=1)  # Auth secret


class SubscriptionDescriptor(BaseModel):
    """Browser PushSubscription.toJSON() shape."""

    endpoint: str = Field(..., min_length=1, max_length=1000)
    expiration_time: int | None = Field(None, alias="expirationTime")
    keys: SubscriptionKeys

    model_config = {"populate_by_name": True}

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class SubscribeResponse(BaseModel):
    status: str
    updated_at: datetime | None = None


class NotificationPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    body: str = Field(..., min_length=1, max_length=BODY_MAX_LENGTH)
    url: str | None = Field(None, max_length=500)

    model_config = {"str_strip_whitespace": True}


class BroadcastRequest(BaseModel):
    user_ids: list[int] | None = Field(None, alias="userIds")
    payload: NotificationPayload

    model_config = {"populate_by_name": True}


class BroadcastResponse(BaseModel):
    success: bool = True
    sent: int
    failed: int


class SentNotificationResponse(BaseModel):
    id: int
    title: str
    body: str
    url: str | None = None
    sent: int
    failed: int
    created_by: int | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
