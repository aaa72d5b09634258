import os
from dataclasses import dataclass
from typing import Optional

from storage import MAX_EXPIRE_HOURS

DATA_DIR = "data"
DB_FILE = os.path.join(DATA_DIR, "dispenser.db")

# сколько часов живёт выданное сообщение, если при добавлении не указано
DEFAULT_EXPIRE_HOURS = 8

DEFAULT_PORT = 10000

# сколько строк показываем в /listitems
LIST_LIMIT = 200


@dataclass(frozen=True)
class Settings:
    token: str
    admin_id: int
    default_expire_hours: int = DEFAULT_EXPIRE_HOURS
    source_channel_id: Optional[int] = None
    db_path: str = DB_FILE
    webhook_base: Optional[str] = None
    port: int = DEFAULT_PORT
    list_limit: int = LIST_LIMIT
    log_level: str = "INFO"

    @property
    def webhook_path(self) -> str:
        # без ведущего слеша, с завершающим; токен в пути прячет вебхук от чужих
        return f"webhook/{self.token}/"

    @property
    def webhook_url(self) -> Optional[str]:
        if not self.webhook_base:
            return None
        return self.webhook_base.rstrip("/") + "/" + self.webhook_path


def _int(env, name: str, default: Optional[int] = None, positive: bool = False) -> Optional[int]:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise SystemExit(f"Error: {name} must be an integer, got {raw!r}")
    if positive and value <= 0:
        raise SystemExit(f"Error: {name} must be positive, got {value}")
    return value


def _webhook_base(env) -> Optional[str]:
    base = (env.get("WEBHOOK_URL") or env.get("RENDER_URL") or "").strip()
    if base:
        return base
    host = (env.get("RENDER_EXTERNAL_HOSTNAME") or "").strip()
    if host:
        return f"https://{host}"
    return None


def load_settings(env=None) -> Settings:
    env = os.environ if env is None else env

    token = (env.get("BOT_TOKEN") or "").strip()
    if not token:
        raise SystemExit("Error: BOT_TOKEN is not set")

    admin_id = _int(env, "ADMIN_ID")
    if admin_id is None:
        raise SystemExit("Error: ADMIN_ID is not set")

    default_hours = _int(env, "DEFAULT_EXPIRE_HOURS", DEFAULT_EXPIRE_HOURS, positive=True)
    if default_hours > MAX_EXPIRE_HOURS:
        raise SystemExit(f"Error: DEFAULT_EXPIRE_HOURS must be at most {MAX_EXPIRE_HOURS}, got {default_hours}")

    return Settings(
        token=token,
        admin_id=admin_id,
        default_expire_hours=default_hours,
        source_channel_id=_int(env, "CHANNEL_ID"),
        db_path=(env.get("DB_PATH") or "").strip() or DB_FILE,
        webhook_base=_webhook_base(env),
        port=_int(env, "PORT", DEFAULT_PORT, positive=True),
        list_limit=_int(env, "LIST_LIMIT", LIST_LIMIT, positive=True),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )
