"""
Client-side push subscription lifecycle.

ClientSubscriptionManager drives the device capability (permission prompt,
agent registration, platform subscription) and persists the resulting
descriptor through the pushcast HTTP API via SubscriptionApiClient.

subscribe() and unsubscribe() must be triggered by a user gesture; the
manager serializes them so two calls never race for the same user.
"""

import asyncio
import base64
import logging

import httpx

from pushcast.client.capability import PermissionState, PushCapability
from pushcast.core.errors import AgentUnsupported, NotAuthenticated, PermissionDenied, PersistenceError, Unsupported
from pushcast.schemas.push import SubscriptionDescriptor

logger = logging.getLogger(__name__)

DEFAULT_AGENT_SCRIPT = "/service-worker.js"


def url_base64_to_bytes(value: str) -> bytes:
    """Decode a URL-safe base64 VAPID key, restoring stripped padding."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class SubscriptionApiClient:
    """Subscription Store access over the /api/push endpoints."""

    def __init__(self, http: httpx.AsyncClient, token: str | None = None):
        self.http = http
        self.token = token

    async def vapid_public_key(self) -> str:
        resp = await self._request("GET", "/api/push/vapid-public-key")
        return resp.json()["key"]

    async def save(self, descriptor: SubscriptionDescriptor) -> dict:
        self._require_token()
        resp = await self._request("POST", "/api/push/subscribe", json=descriptor.to_json())
        return resp.json()

    async def delete(self) -> bool:
        self._require_token()
        resp = await self._request("DELETE", "/api/push/unsubscribe")
        return bool(resp.json().get("removed"))

    def _require_token(self) -> None:
        if not self.token:
            raise NotAuthenticated("No signed-in user to store the subscription for")

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            resp = await self.http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Subscription store unreachable: {exc}") from exc

        if resp.status_code == 401:
            raise NotAuthenticated("Session expired or invalid")
        if resp.is_error:
            raise PersistenceError(_error_message(resp))
        return resp


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"Subscription store returned HTTP {resp.status_code}"
    message = (body.get("error") or body.get("detail")) if isinstance(body, dict) else None
    return str(message) if message else f"Subscription store returned HTTP {resp.status_code}"


class ClientSubscriptionManager:
    def __init__(
        self,
        capability: PushCapability,
        api: SubscriptionApiClient,
        *,
        vapid_public_key: str | None = None,
        agent_script: str = DEFAULT_AGENT_SCRIPT,
    ):
        self.capability = capability
        self.api = api
        self.agent_script = agent_script
        self._vapid_public_key = vapid_public_key
        self._lock = asyncio.Lock()

    async def register_agent(self):
        """Install/activate the background agent. Safe to call on every page load."""
        if not self.capability.agents_supported:
            raise AgentUnsupported("Service workers are not supported in this browser")
        registration = await self.capability.register_agent(self.agent_script)
        logger.debug("Background agent registered: %s", registration)
        return registration

    async def request_permission(self) -> bool:
        if not self.capability.notifications_supported:
            raise Unsupported("Notifications are not supported in this browser")
        return await self.capability.request_permission() == PermissionState.GRANTED

    async def subscribe(self) -> SubscriptionDescriptor:
        async with self._lock:
            if not self.capability.notifications_supported:
                raise Unsupported("Notifications not supported")

            if not await self.request_permission():
                raise PermissionDenied("Notification permission denied")

            await self.register_agent()
            await self.capability.wait_until_active()

            key = url_base64_to_bytes(await self._application_server_key())
            descriptor = await self.capability.subscribe(key)

            try:
                await self.api.save(descriptor)
            except NotAuthenticated:
                # The platform subscription stays; only persistence is skipped.
                logger.warning("Push subscription created but not stored: no signed-in user")
                raise
            except PersistenceError:
                await self._rollback()
                raise

            logger.info("Subscribed to push notifications at %s", descriptor.endpoint)
            return descriptor

    async def unsubscribe(self) -> bool:
        """Cancel the local subscription and delete the stored one. No-op without one."""
        async with self._lock:
            subscription = await self.capability.get_subscription()
            if subscription is None:
                return False

            await self.capability.unsubscribe()
            try:
                await self.api.delete()
            except NotAuthenticated:
                logger.info("Unsubscribed locally; no signed-in user to remove the stored subscription for")
            return True

    async def is_subscribed(self) -> bool:
        """UI-state query. Any failure reads as "not subscribed"."""
        try:
            if not self.capability.agents_supported:
                return False
            return await self.capability.get_subscription() is not None
        except Exception as exc:
            logger.debug("Subscription lookup failed: %s", exc)
            return False

    async def _application_server_key(self) -> str:
        if not self._vapid_public_key:
            self._vapid_public_key = await self.api.vapid_public_key()
        if not self._vapid_public_key:
            raise PersistenceError("Server has no VAPID public key configured")
        return self._vapid_public_key

    async def _rollback(self) -> None:
        try:
            await self.capability.unsubscribe()
        except Exception as exc:
            logger.warning("Could not roll back platform subscription: %s", exc)
