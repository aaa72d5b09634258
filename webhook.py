import logging
import secrets
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from telebot import types

logger = logging.getLogger(__name__)

HEALTH_TEXT = "Dispenser online (webhook)"
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def new_secret_token() -> str:
    return secrets.token_urlsafe(32)


def create_app(bot, url_path: str, secret_token: Optional[str] = None) -> FastAPI:
    """HTTP-сторона вебхука.

    GET / - проверка живости для хостинга, POST /<url_path> - апдейты от Telegram.
    Если задан secret_token, апдейты без правильного заголовка отбиваются 403.
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    path = "/" + url_path.strip("/") + "/"

    @app.get("/", response_class=PlainTextResponse)
    def health():
        return HEALTH_TEXT

    @app.post(path)
    async def receive_update(request: Request):
        if secret_token and request.headers.get(SECRET_HEADER) != secret_token:
            logger.warning("Webhook call with a wrong secret token")
            raise HTTPException(status_code=403, detail="forbidden")

        try:
            update = types.Update.de_json(await request.json())
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed webhook update: %s", e)
            raise HTTPException(status_code=400, detail="bad update")

        bot.process_new_updates([update])
        return {"ok": True}

    return app
