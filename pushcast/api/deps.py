from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pushcast.database import get_db
from pushcast.models.user import User
from pushcast.services import auth_service
from pushcast.services.notification_log import NotificationLog
from pushcast.services.push_service import BroadcastDispatcher, load_credentials
from pushcast.services.subscription_store import SubscriptionStore

# auto_error=False so a missing header is a 401, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = auth_service.get_user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Verifies the current user is an administrator (is_admin = True).
    Returns 403 for any authenticated non-admin.
    """
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


def get_subscription_store(db: Session = Depends(get_db)) -> SubscriptionStore:
    return SubscriptionStore(db)


def get_notification_log(db: Session = Depends(get_db)) -> NotificationLog:
    return NotificationLog(db)


def get_dispatcher(store: SubscriptionStore = Depends(get_subscription_store)) -> BroadcastDispatcher:
    """Raises MissingCredentials (HTTP 500) when no VAPID private key is configured."""
    return BroadcastDispatcher(store, load_credentials())
