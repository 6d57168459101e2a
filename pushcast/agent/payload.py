"""
Push payload resolution.

Two wire shapes are accepted:

    {"title": ..., "body": ..., "url": ...}                       (pushcast dispatcher)
    {"notification": {"title": ..., "body": ...}, "data": {"url": ...}}   (FCM style)

Anything missing or unreadable resolves to DEFAULT_PUSH_PAYLOAD, field by field.
"""

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    url: str


DEFAULT_PUSH_PAYLOAD = NotificationContent(
    title="Union Event",
    body="You have a new notification",
    url="/events",
)


def parse_push_data(data: bytes | str | None) -> dict | None:
    """Decode a push body to a JSON object, or None if it isn't one."""
    if data is None:
        return None
    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def resolve_push_payload(
    data: bytes | str | None,
    default: NotificationContent = DEFAULT_PUSH_PAYLOAD,
) -> NotificationContent:
    parsed = parse_push_data(data)
    if parsed is None:
        return default

    nested = parsed.get("notification")
    source = nested if isinstance(nested, dict) else parsed
    extra = parsed.get("data") if isinstance(parsed.get("data"), dict) else {}

    return NotificationContent(
        title=_text(source.get("title")) or default.title,
        body=_text(source.get("body")) or default.body,
        url=_text(extra.get("url")) or _text(parsed.get("url")) or default.url,
    )


def _text(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None
