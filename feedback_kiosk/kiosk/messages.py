"""User-facing kiosk messages and the board that shows one at a time."""

from __future__ import annotations

from datetime import datetime, timedelta

from feedback_kiosk.config import MessagesConfig
from feedback_kiosk.core.clock import Clock, utc_now
from feedback_kiosk.core.events import EventEmitter, Handler, Unsubscribe
from feedback_kiosk.models.kiosk import KioskMessage

THANK_YOU_TEXT = "Obrigado pelo seu feedback!"
RECORDED_OFFLINE_TEXT = "Registado. Será sincronizado quando houver ligação."
QUEUED_TEXT = "Registado em modo offline. Será enviado quando voltar a internet."
DENIED_TEXT = (
    "Não foi possível registar: policies do Supabase a bloquear (permission-denied). "
    "Atualiza as policies no Supabase."
)
FLUSH_DENIED_TEXT = (
    "Os registos pendentes não podem ser enviados: policies do Supabase a bloquear. "
    "Atualiza as policies no Supabase."
)
STORAGE_FAILED_TEXT = "Não foi possível guardar o registo neste equipamento. Tente novamente."


class MessageCatalog:
    def __init__(self, config: MessagesConfig | None = None) -> None:
        self._config = config or MessagesConfig()

    def thank_you(self) -> KioskMessage:
        return KioskMessage(kind="success", text=THANK_YOU_TEXT, duration_ms=self._config.success_ms)

    def recorded_while_offline(self) -> KioskMessage:
        return KioskMessage(kind="loading", text=RECORDED_OFFLINE_TEXT, duration_ms=self._config.queued_ms)

    def queued(self) -> KioskMessage:
        return KioskMessage(kind="loading", text=QUEUED_TEXT, duration_ms=self._config.queued_ms)

    def denied(self) -> KioskMessage:
        return KioskMessage(kind="error", text=DENIED_TEXT, duration_ms=self._config.denied_ms)

    def flush_denied(self) -> KioskMessage:
        return KioskMessage(kind="error", text=FLUSH_DENIED_TEXT, duration_ms=self._config.denied_ms)

    def storage_failed(self) -> KioskMessage:
        return KioskMessage(kind="error", text=STORAGE_FAILED_TEXT, duration_ms=self._config.denied_ms)


class MessageBoard:
    """Latest message plus its expiry; a newer message replaces the current one."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._message: KioskMessage | None = None
        self._expires_at: datetime | None = None
        self._published: EventEmitter[KioskMessage] = EventEmitter("kiosk_message")

    def on_message(self, handler: Handler[KioskMessage]) -> Unsubscribe:
        return self._published.subscribe(handler)

    async def publish(self, message: KioskMessage) -> None:
        self._message = message
        self._expires_at = self._clock() + timedelta(milliseconds=message.duration_ms)
        await self._published.emit(message)

    def current(self) -> KioskMessage | None:
        if self._message is None or self._expires_at is None:
            return None
        if self._clock() >= self._expires_at:
            self._message = None
            self._expires_at = None
            return None
        return self._message


__all__ = [
    "DENIED_TEXT",
    "FLUSH_DENIED_TEXT",
    "QUEUED_TEXT",
    "RECORDED_OFFLINE_TEXT",
    "STORAGE_FAILED_TEXT",
    "THANK_YOU_TEXT",
    "MessageBoard",
    "MessageCatalog",
]
