import logging
import time

from admin import ChannelPost, format_item_list, parse_add_payload
from errors import GatewayFailure, InvalidInput, StorageFailure
from storage import CatalogItem, normalize_key
from utils import command_args, deep_link, t

logger = logging.getLogger(__name__)


class Dispenser:
    """Выдача по диплинку + админские команды.

    Ничего не знает о TeleBot: все вызовы платформы идут через gateway,
    каждый метод возвращает текст ответа (или None, если отвечать не нужно).
    """

    def __init__(self, settings, catalog, ledger, scheduler, gateway, clock=time.time):
        self.settings = settings
        self.catalog = catalog
        self.ledger = ledger
        self.scheduler = scheduler
        self.gateway = gateway
        self.clock = clock

    def is_admin(self, user_id) -> bool:
        return user_id is not None and int(user_id) == self.settings.admin_id

    # ---------- пользователи ----------

    def redeem(self, chat_id: int, payload: str):
        key = normalize_key(payload)
        if not key:
            return t("open_from_app")

        try:
            item = self.catalog.get(key)
        except StorageFailure:
            logger.exception("Catalog lookup failed for %r", key)
            return t("generic_error")

        if item is None:
            logger.info("Chat %s asked for unknown key %r", chat_id, key)
            return t("not_available")

        caption = t("caption", title=item.title, hours=item.expire_hours)
        try:
            sent_chat_id, message_id = self.gateway.send_media(chat_id, item.media_ref, item.media_type, caption)
        except GatewayFailure as e:
            logger.warning("Delivery of %r to %s failed: %s", key, chat_id, e)
            return t("send_failed")

        delivered_at = int(self.clock())
        expire_at = delivered_at + item.expire_hours * 3600
        try:
            record = self.ledger.record(sent_chat_id, message_id, item.key, delivered_at, expire_at)
        except StorageFailure:
            logger.exception("Could not record delivery of %r to %s", key, chat_id)
            return t("generic_error")

        # строка уже в базе, только теперь заводим таймер
        self.scheduler.arm(record)
        logger.info("Delivered %r to %s as message %s, expires at %s",
                    key, sent_chat_id, message_id, expire_at)
        return None

    def fallback(self, user_id):
        if self.is_admin(user_id):
            return t("admin_help")
        return t("use_app_only")

    # ---------- админка ----------

    def add_item(self, user_id, text: str) -> str:
        if not self.is_admin(user_id):
            return t("use_app_only")

        try:
            req = parse_add_payload(command_args(text), self.settings.default_expire_hours)
        except InvalidInput as e:
            return t("add_invalid", error=e, usage=t("add_usage"))

        media_ref, media_type = req.media, "video"
        channel_id = channel_msg_id = None
        if isinstance(req.media, ChannelPost):
            channel_id = req.media.channel_id
            if channel_id is None:
                channel_id = self.settings.source_channel_id
            if channel_id is None:
                return t("add_no_channel")
            channel_msg_id = req.media.message_id
            try:
                media_ref, media_type = self.gateway.resolve_channel_media(
                    channel_id, channel_msg_id, via_chat_id=self.settings.admin_id,
                )
            except (GatewayFailure, InvalidInput) as e:
                logger.warning("Could not resolve %s/%s: %s", channel_id, channel_msg_id, e)
                return t("add_resolve_failed")

        item = CatalogItem(
            key=req.key,
            title=req.title,
            media_ref=media_ref,
            expire_hours=req.hours,
            media_type=media_type,
            # для публичных каналов (@name) числового id нет
            channel_id=channel_id if isinstance(channel_id, int) else None,
            channel_msg_id=channel_msg_id,
        )
        try:
            stored = self.catalog.put(item)
        except InvalidInput as e:
            return t("add_invalid", error=e, usage=t("add_usage"))
        except StorageFailure:
            logger.exception("Could not store item %r", req.key)
            return t("generic_error")

        logger.info("Item %r added (%s, %sh)", stored.key, stored.media_type, stored.expire_hours)
        try:
            link = self.deep_link(stored.key)
        except GatewayFailure as e:
            logger.warning("Could not build deep link: %s", e)
            return t("item_added_no_link", title=stored.title, hours=stored.expire_hours, key=stored.key)
        return t("item_added", title=stored.title, hours=stored.expire_hours, link=link)

    def delete_item(self, user_id, text: str) -> str:
        if not self.is_admin(user_id):
            return t("use_app_only")

        key = normalize_key(command_args(text))
        if not key:
            return t("del_usage")

        try:
            removed = self.catalog.delete(key)
        except StorageFailure:
            logger.exception("Could not delete item %r", key)
            return t("generic_error")

        if not removed:
            return t("item_missing", key=key)
        logger.info("Item %r deleted", key)
        return t("item_deleted", key=key)

    def list_items(self, user_id) -> str:
        if not self.is_admin(user_id):
            return t("use_app_only")
        try:
            items = self.catalog.list(limit=self.settings.list_limit)
        except StorageFailure:
            logger.exception("Could not list items")
            return t("generic_error")
        return format_item_list(items)

    def stats(self, user_id) -> str:
        if not self.is_admin(user_id):
            return t("use_app_only")
        try:
            items = self.catalog.count()
            pending = self.ledger.count()
        except StorageFailure:
            logger.exception("Could not read stats")
            return t("generic_error")
        return t("stats", items=items, pending=pending, timers=len(self.scheduler.pending()))

    def help(self, user_id) -> str:
        if not self.is_admin(user_id):
            return t("use_app_only")
        return t("admin_help")

    def deep_link(self, key: str) -> str:
        return deep_link(self.gateway.bot_username(), key)
