"""
Side effects the background agent asks its host to perform.

DeliveryAgent.handle() only returns these; AgentRuntime executes them.
"""

from dataclasses import dataclass, field

from pushcast.agent.events import FetchRequest


@dataclass(frozen=True)
class SkipWaiting:
    """Activate immediately, superseding any older agent instance."""


@dataclass(frozen=True)
class ClearCaches:
    """Delete every cache left behind by earlier agent versions."""


@dataclass(frozen=True)
class ClaimClients:
    """Take control of all open windows without a reload."""


@dataclass(frozen=True)
class ShowNotification:
    title: str
    options: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CloseNotification:
    tag: str


@dataclass(frozen=True)
class FocusWindow:
    window_id: str


@dataclass(frozen=True)
class OpenWindow:
    url: str


@dataclass(frozen=True)
class PassthroughFetch:
    request: FetchRequest


@dataclass(frozen=True)
class FallbackCache:
    request: FetchRequest


Effect = (
    SkipWaiting
    | ClearCaches
    | ClaimClients
    | ShowNotification
    | CloseNotification
    | FocusWindow
    | OpenWindow
    | PassthroughFetch
    | FallbackCache
)
