"""
Device capability port for the client subscription manager.

The embedding runtime (browser bridge, desktop shell, test fake) implements
PushCapability; the manager never touches ambient globals.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from pushcast.schemas.push import SubscriptionDescriptor


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"


@dataclass(frozen=True)
class AgentRegistration:
    script_url: str
    scope: str = "/"


class PushCapability(ABC):
    @property
    @abstractmethod
    def notifications_supported(self) -> bool: ...

    @property
    @abstractmethod
    def agents_supported(self) -> bool: ...

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        """Show the permission prompt once and return the user's answer."""

    @abstractmethod
    async def register_agent(self, script_url: str) -> AgentRegistration:
        """Install the background agent. Re-registering the same script is a no-op."""

    @abstractmethod
    async def wait_until_active(self) -> None:
        """Resolve once the registered agent is active."""

    @abstractmethod
    async def subscribe(self, application_server_key: bytes) -> SubscriptionDescriptor:
        """Create a platform push subscription for this origin."""

    @abstractmethod
    async def get_subscription(self) -> SubscriptionDescriptor | None: ...

    @abstractmethod
    async def unsubscribe(self) -> bool:
        """Cancel the platform subscription. Returns False if there was none."""
