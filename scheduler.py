import logging
import threading
import time

from errors import StorageFailure
from storage import DeliveryRecord

logger = logging.getLogger(__name__)


class ExpiryScheduler:
    """Держит по одному таймеру удаления на каждую строку журнала выдач.

    Журнал (DeliveryLedger) - единственный источник правды: после рестарта
    все таймеры восстанавливаются через rehydrate().
    """

    def __init__(self, ledger, gateway, clock=time.time, timer_factory=threading.Timer):
        self.ledger = ledger
        self.gateway = gateway
        self.clock = clock
        self.timer_factory = timer_factory
        self._timers = {}  # delivery id -> timer
        self._lock = threading.Lock()

    def arm(self, record: DeliveryRecord):
        # Timer не принимает задержку больше TIMEOUT_MAX, поток падает
        delay = min(max(0.0, record.expire_at - self.clock()), threading.TIMEOUT_MAX)

        with self._lock:
            if record.id in self._timers:
                raise RuntimeError(f"delivery {record.id} is already scheduled")
            timer = self.timer_factory(delay, self._fire, args=(record,))
            timer.daemon = True
            self._timers[record.id] = timer
            timer.start()

        if delay == 0:
            logger.info("Delivery %s already expired, deleting now", record.id)
        else:
            logger.debug("Delivery %s scheduled for deletion in %.0fs", record.id, delay)
        return timer

    def _fire(self, record: DeliveryRecord):
        try:
            self.gateway.delete_message(record.chat_id, record.message_id)
            logger.info("Deleted message %s in chat %s (delivery %s)",
                        record.message_id, record.chat_id, record.id)
        except Exception as e:
            # сообщение уже удалено / бота разжаловали / слишком старое - повтор не поможет
            logger.warning("Could not delete message %s in chat %s: %s",
                           record.message_id, record.chat_id, e)

        try:
            self.ledger.remove(record.id)
        except StorageFailure:
            logger.exception("Could not remove delivery %s from ledger", record.id)
        finally:
            with self._lock:
                self._timers.pop(record.id, None)

    def rehydrate(self) -> int:
        """Заводит таймеры на все строки журнала; возвращается, когда просроченные уже удалены."""
        now = self.clock()
        expired = []
        records = self.ledger.list_all()

        for record in records:
            timer = self.arm(record)
            if record.expire_at <= now:
                expired.append(timer)

        for timer in expired:
            timer.join()

        logger.info("Rehydrated %d deliveries (%d already expired)", len(records), len(expired))
        return len(records)

    def pending(self) -> list:
        with self._lock:
            return sorted(self._timers)

    def shutdown(self):
        # строки журнала остаются, следующий старт их подхватит
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
