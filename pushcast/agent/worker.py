"""
Background delivery agent decision logic.

DeliveryAgent.handle() maps one event to the effects the host must carry
out. It holds no state between events: the host may evict the agent at any
time and a fresh instance must behave identically.
"""

import time
from collections.abc import Callable, Mapping
from urllib.parse import urljoin

from pushcast.agent.effects import (
    ClaimClients,
    ClearCaches,
    CloseNotification,
    Effect,
    FocusWindow,
    OpenWindow,
    PassthroughFetch,
    ShowNotification,
    SkipWaiting,
)
from pushcast.agent.events import (
    ActivateEvent,
    DisplayedNotification,
    FetchEvent,
    InstallEvent,
    NotificationClickEvent,
    PushEvent,
    WindowClient,
)
from pushcast.agent.payload import DEFAULT_PUSH_PAYLOAD, resolve_push_payload

DEFAULT_TAG_PREFIX = "union-event"
DEFAULT_ICON = "/favicon.png"
VIEW_ACTION = "view"
VIBRATE_PATTERN = [200, 100, 200]


class DeliveryAgent:
    def __init__(
        self,
        origin: str,
        *,
        tag_prefix: str = DEFAULT_TAG_PREFIX,
        icon: str = DEFAULT_ICON,
        clock: Callable[[], float] = time.time,
    ):
        self.origin = origin
        self.tag_prefix = tag_prefix
        self.icon = icon
        self.clock = clock

    @classmethod
    def from_settings(cls, origin: str, config, **kwargs) -> "DeliveryAgent":
        """Build an agent with the server's NOTIFICATION_* display settings."""
        return cls(origin, tag_prefix=config.NOTIFICATION_TAG_PREFIX, icon=config.NOTIFICATION_ICON, **kwargs)

    def handle(self, event) -> tuple[Effect, ...]:
        if isinstance(event, InstallEvent):
            return (SkipWaiting(),)
        if isinstance(event, ActivateEvent):
            return (ClearCaches(), ClaimClients())
        if isinstance(event, PushEvent):
            return (self._show(event),)
        if isinstance(event, NotificationClickEvent):
            return self._click(event)
        if isinstance(event, FetchEvent):
            return (PassthroughFetch(event.request),)
        raise TypeError(f"Unsupported agent event: {type(event).__name__}")

    def make_tag(self) -> str:
        # Millisecond timestamp keeps rapid notifications from replacing each other
        return f"{self.tag_prefix}-{int(self.clock() * 1000)}"

    def resolve_click_url(self, notification: DisplayedNotification) -> str:
        data = notification.data
        if isinstance(data, Mapping):
            url = data.get("url")
        elif isinstance(data, str):
            url = data
        else:
            url = None
        if not isinstance(url, str) or not url:
            url = DEFAULT_PUSH_PAYLOAD.url
        return urljoin(self.origin, url)

    def _show(self, event: PushEvent) -> ShowNotification:
        content = resolve_push_payload(event.data)
        return ShowNotification(
            title=content.title,
            options={
                "body": content.body,
                "icon": self.icon,
                "badge": self.icon,
                "data": {"url": content.url},
                "tag": self.make_tag(),
                "requireInteraction": True,
                "renotify": True,
                "vibrate": list(VIBRATE_PATTERN),
            },
        )

    def _click(self, event: NotificationClickEvent) -> tuple[Effect, ...]:
        close = CloseNotification(event.notification.tag)
        if event.action and event.action != VIEW_ACTION:
            return (close,)

        target = self.resolve_click_url(event.notification)
        window = self._find_window(event.windows, target)
        if window is not None:
            return (close, FocusWindow(window.id))
        return (close, OpenWindow(target))

    def _find_window(self, windows: tuple[WindowClient, ...], target: str) -> WindowClient | None:
        for window in windows:
            if urljoin(self.origin, window.url) == target:
                return window
        return None
