import logging
import threading

import requests
from telebot.apihelper import ApiException

from errors import GatewayFailure, InvalidInput

logger = logging.getLogger(__name__)

# порядок важен: у animation Telegram дополнительно заполняет document
_MEDIA_ATTRS = ("video", "animation", "document", "audio", "photo")


def extract_media(message):
    """(file_id, media_type) вложения из сообщения или None."""
    for attr in _MEDIA_ATTRS:
        media = getattr(message, attr, None)
        if not media:
            continue
        if attr == "photo":
            # список размеров, последний - самый большой
            return media[-1].file_id, "photo"
        return media.file_id, attr
    return None


class TelegramGateway:
    """Тонкая обёртка над TeleBot: отправка, удаление, кто я."""

    def __init__(self, bot):
        self.bot = bot
        self._username = None
        self._me_lock = threading.Lock()

    def _call(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (ApiException, requests.RequestException) as e:
            raise GatewayFailure(f"{what} failed: {e}") from e

    def send_media(self, chat_id: int, media_ref: str, media_type: str, caption: str):
        senders = {
            "video": lambda: self.bot.send_video(chat_id, media_ref, caption=caption, supports_streaming=True),
            "document": lambda: self.bot.send_document(chat_id, media_ref, caption=caption),
            "photo": lambda: self.bot.send_photo(chat_id, media_ref, caption=caption),
            "audio": lambda: self.bot.send_audio(chat_id, media_ref, caption=caption),
            "animation": lambda: self.bot.send_animation(chat_id, media_ref, caption=caption),
        }
        send = senders.get(media_type)
        if send is None:
            raise GatewayFailure(f"unsupported media type: {media_type}")
        sent = self._call("send_" + media_type, send)
        return sent.chat.id, sent.message_id

    def delete_message(self, chat_id: int, message_id: int):
        self._call("delete_message", self.bot.delete_message, chat_id, message_id)

    def bot_username(self) -> str:
        with self._me_lock:
            if self._username is None:
                me = self._call("get_me", self.bot.get_me)
                self._username = me.username
            return self._username

    def resolve_channel_media(self, channel_id, message_id: int, via_chat_id: int):
        """Достаёт file_id из поста канала.

        В Bot API нет "получить сообщение по id", поэтому пост пересылается
        в via_chat_id, из копии берётся file_id, копия удаляется.
        """
        fwd = self._call(
            "forward_message", self.bot.forward_message,
            via_chat_id, channel_id, message_id, disable_notification=True,
        )
        try:
            media = extract_media(fwd)
        finally:
            try:
                self.bot.delete_message(fwd.chat.id, fwd.message_id)
            except (ApiException, requests.RequestException) as e:
                logger.warning("Could not remove forwarded copy %s: %s", fwd.message_id, e)

        if media is None:
            raise InvalidInput(f"message {message_id} in {channel_id} has no media")
        return media
