"""
Push subsystem error taxonomy.

Capability and permission errors come from the client side and are never
retried. Store and credential errors surface as HTTP 500 from the API.
Per-recipient delivery failures are NOT exceptions: the dispatcher records
them in a DeliveryResult and keeps going.
"""


class PushError(Exception):
    """Base class for every error raised by pushcast."""


# ── Capability ────────────────────────────────────────────────────────────────


class Unsupported(PushError):
    """The runtime has no notification capability."""


class AgentUnsupported(Unsupported):
    """The runtime cannot host a background delivery agent."""


# ── Permission / identity ─────────────────────────────────────────────────────


class PermissionDenied(PushError):
    """The user declined notification permission."""


class NotAuthenticated(PushError):
    """No user identity is available to key the subscription on."""


# ── Store ─────────────────────────────────────────────────────────────────────


class PersistenceError(PushError):
    """A Subscription Store write failed."""


class StoreUnavailable(PushError):
    """The Subscription Store could not be read."""


# ── Dispatcher ────────────────────────────────────────────────────────────────


class InvalidPayload(PushError):
    """Broadcast payload failed validation (e.g. empty title)."""


class MissingCredentials(PushError):
    """The VAPID private key is not configured."""
