import re
from dataclasses import dataclass
from typing import Optional, Union

from errors import InvalidInput
from storage import MAX_EXPIRE_HOURS, normalize_key
from utils import t

DELIMITER = "|"

# https://t.me/c/1234567890/42 - приватный канал, https://t.me/somechannel/42 - публичный
_PRIVATE_POST_RE = re.compile(r"^(?:https?://)?t\.me/c/(\d+)/(\d+)/?$", re.IGNORECASE)
_PUBLIC_POST_RE = re.compile(r"^(?:https?://)?t\.me/([A-Za-z][A-Za-z0-9_]{3,})/(\d+)/?$", re.IGNORECASE)


@dataclass(frozen=True)
class ChannelPost:
    # None - взять CHANNEL_ID из настроек
    channel_id: Optional[Union[int, str]]
    message_id: int


@dataclass(frozen=True)
class AddRequest:
    key: str
    title: str
    media: Union[str, ChannelPost]
    hours: int


def parse_media_ref(raw: str) -> Union[str, ChannelPost]:
    raw = raw.strip()
    if raw.isdigit():
        return ChannelPost(channel_id=None, message_id=int(raw))

    m = _PRIVATE_POST_RE.match(raw)
    if m:
        return ChannelPost(channel_id=int("-100" + m.group(1)), message_id=int(m.group(2)))

    m = _PUBLIC_POST_RE.match(raw)
    if m:
        return ChannelPost(channel_id="@" + m.group(1), message_id=int(m.group(2)))

    return raw


def parse_hours(raw: str, default_hours: int) -> int:
    raw = (raw or "").strip()
    if not raw:
        return default_hours
    try:
        hours = int(raw)
    except ValueError:
        raise InvalidInput(f"hours must be a whole number, got {raw!r}")
    if hours <= 0:
        raise InvalidInput(f"hours must be positive, got {hours}")
    if hours > MAX_EXPIRE_HOURS:
        raise InvalidInput(f"hours must be at most {MAX_EXPIRE_HOURS}, got {hours}")
    return hours


def parse_add_payload(payload: str, default_hours: int) -> AddRequest:
    """KEY | TITLE | MEDIA_REFERENCE | HOURS?"""
    parts = [p.strip() for p in (payload or "").split(DELIMITER)]
    if len(parts) < 3:
        raise InvalidInput("expected at least 3 fields")

    key = normalize_key(parts[0])
    if not key:
        raise InvalidInput("key must not be empty")
    if not parts[2]:
        raise InvalidInput("media reference must not be empty")

    title = parts[1] or key
    hours = parse_hours(parts[3] if len(parts) > 3 else "", default_hours)
    return AddRequest(key=key, title=title, media=parse_media_ref(parts[2]), hours=hours)


def format_item_list(items) -> str:
    if not items:
        return t("list_empty")
    return "\n".join(
        t("list_row", key=i.key, title=i.title, hours=i.expire_hours) for i in items
    )
