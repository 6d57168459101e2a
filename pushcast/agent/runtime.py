"""
Host adapter for the background delivery agent.

The embedding runtime implements AgentHost and forwards every incoming event
to AgentRuntime.dispatch(), handing the returned coroutine to its own
keep-alive mechanism (event.waitUntil in a service worker). dispatch() only
returns once every effect has completed, so the agent is never recycled
halfway through showing a notification or opening a window.

There is no retry: an event whose handling raises is logged and dropped.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from pushcast.agent.effects import (
    ClaimClients,
    ClearCaches,
    CloseNotification,
    Effect,
    FallbackCache,
    FocusWindow,
    OpenWindow,
    PassthroughFetch,
    ShowNotification,
    SkipWaiting,
)
from pushcast.agent.events import FetchRequest, InstallEvent
from pushcast.agent.worker import DeliveryAgent

logger = logging.getLogger(__name__)


class AgentState(str, Enum):
    INSTALLING = "installing"
    IDLE = "idle"
    HANDLING = "handling"
    TERMINATED = "terminated"


class AgentHost(ABC):
    """Platform operations the agent's effects are carried out with."""

    @abstractmethod
    async def skip_waiting(self) -> None: ...

    @abstractmethod
    async def clear_caches(self) -> None: ...

    @abstractmethod
    async def claim_clients(self) -> None: ...

    @abstractmethod
    async def show_notification(self, title: str, options: dict) -> None: ...

    @abstractmethod
    async def close_notification(self, tag: str) -> None: ...

    @abstractmethod
    async def focus_window(self, window_id: str): ...

    @abstractmethod
    async def open_window(self, url: str): ...

    @abstractmethod
    async def fetch(self, request: FetchRequest):
        """Perform the request on the network. Raises on network failure."""

    @abstractmethod
    async def cache_match(self, request: FetchRequest):
        """Return a cached response for request, or None."""


class AgentRuntime:
    def __init__(self, agent: DeliveryAgent, host: AgentHost):
        self.agent = agent
        self.host = host
        self.state = AgentState.INSTALLING

    async def dispatch(self, event) -> list | None:
        """Handle one event to completion. Returns effect results, or None if dropped."""
        installing = isinstance(event, InstallEvent)
        if self.state is AgentState.TERMINATED:
            logger.debug("Agent restarting for %s", type(event).__name__)
        self.state = AgentState.INSTALLING if installing else AgentState.HANDLING

        try:
            effects = self.agent.handle(event)
            results = [await self._execute(effect) for effect in effects]
        except Exception:
            logger.exception("Agent dropped %s", type(event).__name__)
            results = None

        # Installed agents wait for activate; everything else returns to idle.
        self.state = AgentState.INSTALLING if installing else AgentState.IDLE
        return results

    def terminate(self) -> None:
        """The host evicted the agent. Nothing survives; the next event restarts it."""
        self.state = AgentState.TERMINATED

    async def _execute(self, effect: Effect):
        if isinstance(effect, SkipWaiting):
            return await self.host.skip_waiting()
        if isinstance(effect, ClearCaches):
            return await self.host.clear_caches()
        if isinstance(effect, ClaimClients):
            return await self.host.claim_clients()
        if isinstance(effect, ShowNotification):
            return await self.host.show_notification(effect.title, effect.options)
        if isinstance(effect, CloseNotification):
            return await self.host.close_notification(effect.tag)
        if isinstance(effect, FocusWindow):
            return await self.host.focus_window(effect.window_id)
        if isinstance(effect, OpenWindow):
            return await self.host.open_window(effect.url)
        if isinstance(effect, PassthroughFetch):
            return await self._passthrough(effect.request)
        if isinstance(effect, FallbackCache):
            return await self.host.cache_match(effect.request)
        raise TypeError(f"Unknown agent effect: {type(effect).__name__}")

    async def _passthrough(self, request: FetchRequest):
        try:
            return await self.host.fetch(request)
        except Exception as exc:
            logger.debug("Network request for %s failed (%s); trying cache", request.url, exc)
            return await self._execute(FallbackCache(request))
