"""
Web Push broadcast dispatcher.

Uses pywebpush to deliver one payload to some or all stored subscriptions.
Attempts run on a bounded thread pool and are fully independent: a revoked,
malformed or hung endpoint is recorded as a failure and never stops the rest
of the batch. Subscriptions the push service reports as gone (HTTP 404/410)
are pruned once the batch has finished.
"""

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import lru_cache

from pydantic import ValidationError
from pywebpush import WebPushException, webpush

from pushcast.config import settings
from pushcast.core.errors import InvalidPayload, MissingCredentials, PersistenceError
from pushcast.schemas.push import NotificationPayload, SubscriptionDescriptor
from pushcast.services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)

# Push service answers meaning "this subscription will never work again"
GONE_STATUS_CODES = frozenset({404, 410})


@dataclass(frozen=True)
class VapidCredentials:
    private_key: str
    public_key: str
    claims_email: str

    @classmethod
    def from_settings(cls, config=settings) -> "VapidCredentials":
        if not config.VAPID_PRIVATE_KEY:
            raise MissingCredentials("VAPID keys not configured")
        return cls(
            private_key=config.VAPID_PRIVATE_KEY,
            public_key=config.VAPID_PUBLIC_KEY,
            claims_email=config.VAPID_CLAIMS_EMAIL,
        )


@lru_cache(maxsize=1)
def load_credentials() -> VapidCredentials:
    """Process-wide credentials, read from settings once."""
    return VapidCredentials.from_settings()


@dataclass
class DeliveryResult:
    user_id: int
    subscription: object
    success: bool
    error: str | None = None
    status_code: int | None = None

    @property
    def endpoint(self) -> str | None:
        if not isinstance(self.subscription, dict):
            return None
        return self.subscription.get("endpoint")

    @property
    def gone(self) -> bool:
        return self.status_code in GONE_STATUS_CODES


@dataclass
class BroadcastResult:
    sent: int
    failed: int
    results: list[DeliveryResult] = field(default_factory=list, repr=False)


class BroadcastDispatcher:
    def __init__(
        self,
        store: SubscriptionStore,
        credentials: VapidCredentials,
        *,
        sender: Callable[..., object] = webpush,
        max_workers: int = settings.PUSH_MAX_WORKERS,
        timeout: float = settings.PUSH_TIMEOUT_SECONDS,
        ttl: int = settings.PUSH_TTL_SECONDS,
        prune_gone: bool = settings.PUSH_PRUNE_GONE,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.store = store
        self.credentials = credentials
        self.sender = sender
        self.max_workers = max_workers
        self.timeout = timeout
        self.ttl = ttl
        self.prune_gone = prune_gone

    def dispatch(
        self,
        payload: NotificationPayload | Mapping,
        user_ids: Iterable[int] | None = None,
    ) -> BroadcastResult:
        """Deliver payload to every matching subscription.

        Raises InvalidPayload before touching the store and StoreUnavailable
        if subscriptions cannot be read. Individual delivery failures are
        only counted.
        """
        payload = self._validate(payload)
        targets = [(sub.user_id, sub.subscription) for sub in self.store.list(user_ids)]
        if not targets:
            logger.info("No push subscriptions to deliver to")
            return BroadcastResult(sent=0, failed=0)

        data = json.dumps(payload.model_dump(exclude_none=True))
        workers = min(self.max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push") as pool:
            results = list(pool.map(lambda target: self._deliver(*target, data), targets))

        sent = sum(1 for r in results if r.success)
        failed = len(results) - sent
        logger.info("Push notifications sent: %s successful, %s failed", sent, failed)

        if self.prune_gone:
            self._prune(results)
        return BroadcastResult(sent=sent, failed=failed, results=results)

    @staticmethod
    def _validate(payload: NotificationPayload | Mapping) -> NotificationPayload:
        if isinstance(payload, NotificationPayload):
            return payload
        try:
            return NotificationPayload.model_validate(payload or {})
        except ValidationError as exc:
            raise InvalidPayload(f"Missing required fields: payload with title ({exc.error_count()} errors)") from exc

    def _deliver(self, user_id: int, subscription, data: str) -> DeliveryResult:
        """One attempt. Never raises."""
        try:
            descriptor = SubscriptionDescriptor.model_validate(subscription)
        except ValidationError:
            logger.warning("Invalid subscription object for user %s", user_id)
            return DeliveryResult(user_id, subscription, success=False, error="Invalid subscription object")

        try:
            self.sender(
                subscription_info={
                    "endpoint": descriptor.endpoint,
                    "keys": {"p256dh": descriptor.keys.p256dh, "auth": descriptor.keys.auth},
                },
                data=data,
                vapid_private_key=self.credentials.private_key,
                # pywebpush mutates the claims dict, so each attempt gets its own
                vapid_claims={"sub": self.credentials.claims_email},
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            logger.warning("Push delivery failed for user %s (status %s): %s", user_id, status_code, exc)
            return DeliveryResult(user_id, subscription, success=False, error=str(exc), status_code=status_code)
        except Exception as exc:
            logger.warning("Unexpected push error for user %s: %s", user_id, exc)
            return DeliveryResult(user_id, subscription, success=False, error=str(exc))

        return DeliveryResult(user_id, subscription, success=True)

    def _prune(self, results: list[DeliveryResult]) -> None:
        stale = [(r.user_id, r.endpoint) for r in results if r.gone]
        if not stale:
            return
        try:
            removed = self.store.delete_stale(stale)
        except PersistenceError as exc:
            logger.warning("Could not prune expired push subscriptions: %s", exc)
            return
        logger.info("Removed %s expired push subscription(s)", removed)
