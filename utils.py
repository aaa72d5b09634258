import logging
from urllib.parse import quote

from telebot import util

from texts import TEXTS

logger = logging.getLogger(__name__)

MAX_MESSAGE_LEN = 4096


def t(text_key: str, /, **kwargs) -> str:
    # text_key позиционный: в шаблонах есть плейсхолдер {key}
    s = TEXTS.get(text_key, text_key)
    return s.format(**kwargs)


def command_args(text: str) -> str:
    """'/additem@MyBot a | b' -> 'a | b'"""
    text = (text or "").strip()
    if not text.startswith("/"):
        return text
    parts = text.split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


def deep_link(username: str, key: str) -> str:
    return f"https://t.me/{username}?start={quote(key, safe='')}"


def safe_send_message(bot, chat_id: int, text: str, **kwargs):
    last = None
    for chunk in util.smart_split(text, chars_per_string=MAX_MESSAGE_LEN):
        try:
            last = bot.send_message(chat_id, chunk, **kwargs)
        except Exception as e:
            logger.warning("Could not send message to %s: %s", chat_id, e)
            return None
    return last
