class DispenserError(Exception):
    pass


class InvalidInput(DispenserError):
    """Кривая команда админа. Текст можно показывать админу."""


class GatewayFailure(DispenserError):
    """Telegram отклонил вызов или недоступен."""


class StorageFailure(DispenserError):
    """Не удалось открыть, прочитать или записать sqlite."""
