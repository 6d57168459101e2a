"""Events delivered to the background agent by its host runtime."""

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class WindowClient:
    """An open application window, controlled by this agent or not."""

    id: str
    url: str
    focused: bool = False


@dataclass(frozen=True)
class DisplayedNotification:
    title: str
    tag: str = ""
    # Whatever was attached as options["data"] when the notification was shown.
    data: Mapping | str | None = None


@dataclass(frozen=True)
class FetchRequest:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class InstallEvent:
    pass


@dataclass(frozen=True)
class ActivateEvent:
    pass


@dataclass(frozen=True)
class PushEvent:
    # Decrypted message body; None when the push carried no payload.
    data: bytes | str | None = None


@dataclass(frozen=True)
class NotificationClickEvent:
    notification: DisplayedNotification
    action: str = ""
    # Snapshot of every open window, including uncontrolled ones.
    windows: tuple[WindowClient, ...] = ()


@dataclass(frozen=True)
class FetchEvent:
    request: FetchRequest


AgentEvent = InstallEvent | ActivateEvent | PushEvent | NotificationClickEvent | FetchEvent
