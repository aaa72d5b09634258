import logging
import os
import sqlite3
import threading
import time
from dataclasses import dataclass
from typing import Optional

from errors import InvalidInput, StorageFailure

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("video", "document", "photo", "audio", "animation")

# больше года держать выдачу незачем
MAX_EXPIRE_HOURS = 24 * 366

SCHEMA = """
CREATE TABLE IF NOT EXISTS catalog (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    media_ref TEXT NOT NULL,
    media_type TEXT NOT NULL DEFAULT 'video',
    expire_hours INTEGER NOT NULL,
    channel_id INTEGER,
    channel_msg_id INTEGER,
    added_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS deliveries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id INTEGER NOT NULL,
    message_id INTEGER NOT NULL,
    source_key TEXT NOT NULL,
    delivered_at INTEGER NOT NULL,
    expire_at INTEGER NOT NULL
);
"""


def normalize_key(raw) -> str:
    """Ключи регистронезависимы: trim + lower везде, где ключ приходит снаружи."""
    return (raw or "").strip().lower()


@dataclass(frozen=True)
class CatalogItem:
    key: str
    title: str
    media_ref: str
    expire_hours: int
    added_at: int = 0
    media_type: str = "video"
    channel_id: Optional[int] = None
    channel_msg_id: Optional[int] = None


@dataclass(frozen=True)
class DeliveryRecord:
    id: int
    chat_id: int
    message_id: int
    source_key: str
    delivered_at: int
    expire_at: int


class Database:
    """Одно sqlite-соединение на процесс, каждый вызов под одним локом."""

    def __init__(self, path: str):
        self.path = path
        self.lock = threading.Lock()
        try:
            folder = os.path.dirname(path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            self.conn = sqlite3.connect(path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            with self.conn:
                self.conn.executescript(SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StorageFailure(f"cannot open database {path}: {e}") from e
        logger.info("Database opened at %s", path)

    def execute(self, sql: str, params=()) -> sqlite3.Cursor:
        with self.lock:
            try:
                with self.conn:
                    return self.conn.execute(sql, params)
            except (sqlite3.Error, OverflowError, ValueError) as e:
                raise StorageFailure(str(e)) from e

    def fetchall(self, sql: str, params=()) -> list:
        with self.lock:
            try:
                return self.conn.execute(sql, params).fetchall()
            except (sqlite3.Error, OverflowError, ValueError) as e:
                raise StorageFailure(str(e)) from e

    def fetchone(self, sql: str, params=()):
        with self.lock:
            try:
                return self.conn.execute(sql, params).fetchone()
            except (sqlite3.Error, OverflowError, ValueError) as e:
                raise StorageFailure(str(e)) from e

    def close(self):
        with self.lock:
            self.conn.close()


def _item_from_row(row) -> CatalogItem:
    return CatalogItem(
        key=row["key"],
        title=row["title"],
        media_ref=row["media_ref"],
        expire_hours=int(row["expire_hours"]),
        added_at=int(row["added_at"]),
        media_type=row["media_type"],
        channel_id=row["channel_id"],
        channel_msg_id=row["channel_msg_id"],
    )


def _record_from_row(row) -> DeliveryRecord:
    return DeliveryRecord(
        id=int(row["id"]),
        chat_id=int(row["chat_id"]),
        message_id=int(row["message_id"]),
        source_key=row["source_key"],
        delivered_at=int(row["delivered_at"]),
        expire_at=int(row["expire_at"]),
    )


class CatalogStore:
    def __init__(self, db: Database, clock=time.time):
        self.db = db
        self.clock = clock

    def put(self, item: CatalogItem) -> CatalogItem:
        key = normalize_key(item.key)
        if not key:
            raise InvalidInput("key must not be empty")
        if isinstance(item.expire_hours, bool) or not isinstance(item.expire_hours, int) or item.expire_hours <= 0:
            raise InvalidInput("hours must be a positive integer")
        if item.expire_hours > MAX_EXPIRE_HOURS:
            raise InvalidInput(f"hours must be at most {MAX_EXPIRE_HOURS}")
        if not item.media_ref:
            raise InvalidInput("media reference must not be empty")
        if item.media_type not in MEDIA_TYPES:
            raise InvalidInput(f"unsupported media type: {item.media_type}")

        stored = CatalogItem(
            key=key,
            title=item.title,
            media_ref=item.media_ref,
            expire_hours=item.expire_hours,
            added_at=int(self.clock()),
            media_type=item.media_type,
            channel_id=item.channel_id,
            channel_msg_id=item.channel_msg_id,
        )
        # REPLACE выдаёт новый seq, поэтому перезаписанный ключ поднимается в начало списка
        self.db.execute(
            "INSERT OR REPLACE INTO catalog "
            "(key, title, media_ref, media_type, expire_hours, channel_id, channel_msg_id, added_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (stored.key, stored.title, stored.media_ref, stored.media_type, stored.expire_hours,
             stored.channel_id, stored.channel_msg_id, stored.added_at),
        )
        return stored

    def get(self, key) -> Optional[CatalogItem]:
        key = normalize_key(key)
        if not key:
            return None
        row = self.db.fetchone("SELECT * FROM catalog WHERE key = ?", (key,))
        return _item_from_row(row) if row else None

    def delete(self, key) -> bool:
        cur = self.db.execute("DELETE FROM catalog WHERE key = ?", (normalize_key(key),))
        return cur.rowcount > 0

    def list(self, limit: int = 200) -> list:
        rows = self.db.fetchall(
            "SELECT * FROM catalog ORDER BY added_at DESC, seq DESC LIMIT ?", (int(limit),)
        )
        return [_item_from_row(r) for r in rows]

    def count(self) -> int:
        return int(self.db.fetchone("SELECT COUNT(*) FROM catalog")[0])


class DeliveryLedger:
    def __init__(self, db: Database):
        self.db = db

    def record(self, chat_id: int, message_id: int, source_key: str,
               delivered_at: int, expire_at: int) -> DeliveryRecord:
        cur = self.db.execute(
            "INSERT INTO deliveries (chat_id, message_id, source_key, delivered_at, expire_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (int(chat_id), int(message_id), source_key, int(delivered_at), int(expire_at)),
        )
        return DeliveryRecord(
            id=int(cur.lastrowid),
            chat_id=int(chat_id),
            message_id=int(message_id),
            source_key=source_key,
            delivered_at=int(delivered_at),
            expire_at=int(expire_at),
        )

    def get(self, delivery_id: int) -> Optional[DeliveryRecord]:
        row = self.db.fetchone("SELECT * FROM deliveries WHERE id = ?", (int(delivery_id),))
        return _record_from_row(row) if row else None

    def remove(self, delivery_id: int):
        # удаление несуществующей строки - не ошибка
        self.db.execute("DELETE FROM deliveries WHERE id = ?", (int(delivery_id),))

    def list_all(self) -> list:
        rows = self.db.fetchall("SELECT * FROM deliveries ORDER BY id")
        return [_record_from_row(r) for r in rows]

    def count(self) -> int:
        return int(self.db.fetchone("SELECT COUNT(*) FROM deliveries")[0])
