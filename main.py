import logging

import telebot
import uvicorn
from telebot import util

from app import Dispenser
from config import load_settings
from errors import StorageFailure
from gateway import TelegramGateway
from scheduler import ExpiryScheduler
from storage import CatalogStore, Database, DeliveryLedger
from utils import command_args, safe_send_message
from webhook import create_app, new_secret_token

logger = logging.getLogger("dispenser")


def register_handlers(bot, dispenser: Dispenser):
    def reply(message, text):
        if text:
            safe_send_message(bot, message.chat.id, text)

    @bot.message_handler(commands=["start"])
    def cmd_start(message):
        reply(message, dispenser.redeem(message.chat.id, command_args(message.text)))

    @bot.message_handler(commands=["additem", "addmovie"])
    def cmd_add(message):
        reply(message, dispenser.add_item(message.from_user.id, message.text))

    @bot.message_handler(commands=["delitem", "delmovie"])
    def cmd_delete(message):
        reply(message, dispenser.delete_item(message.from_user.id, message.text))

    @bot.message_handler(commands=["listitems", "listmovies"])
    def cmd_list(message):
        reply(message, dispenser.list_items(message.from_user.id))

    @bot.message_handler(commands=["stats"])
    def cmd_stats(message):
        reply(message, dispenser.stats(message.from_user.id))

    @bot.message_handler(commands=["help"])
    def cmd_help(message):
        reply(message, dispenser.help(message.from_user.id))

    # всё остальное: обычным - отказ, админу - подсказка
    @bot.message_handler(func=lambda m: True, content_types=util.content_type_media)
    def fallback(message):
        user_id = message.from_user.id if message.from_user else None
        reply(message, dispenser.fallback(user_id))


def main():
    settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    telebot.logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    try:
        db = Database(settings.db_path)
    except StorageFailure as e:
        raise SystemExit(f"Error: {e}")

    bot = telebot.TeleBot(settings.token)
    gateway = TelegramGateway(bot)
    catalog = CatalogStore(db)
    ledger = DeliveryLedger(db)
    scheduler = ExpiryScheduler(ledger, gateway)
    dispenser = Dispenser(settings, catalog, ledger, scheduler, gateway)

    # сначала восстановить таймеры и добить просроченное, потом принимать апдейты
    try:
        scheduler.rehydrate()
    except StorageFailure as e:
        raise SystemExit(f"Error: cannot read deliveries: {e}")

    register_handlers(bot, dispenser)

    try:
        if settings.webhook_url:
            secret = new_secret_token()
            bot.remove_webhook()
            bot.set_webhook(url=settings.webhook_url, secret_token=secret)
            logger.info("Bot started (webhook on port %s)", settings.port)
            uvicorn.run(
                create_app(bot, settings.webhook_path, secret_token=secret),
                host="0.0.0.0",
                port=settings.port,
            )
        else:
            logger.info("Bot started (polling)")
            bot.remove_webhook()
            bot.infinity_polling(skip_pending=True)
    finally:
        scheduler.shutdown()
        db.close()


if __name__ == "__main__":
    main()
