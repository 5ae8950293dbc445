from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from ..core.constants import MAX_FAILED_DELIVERIES
from .datetime_utils import utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[["DomainEvent"], None]


@dataclass(frozen=True)
class DomainEvent:
    """Something that happened to an aggregate, published after it was saved."""

    name: str
    tenant_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class FailedDelivery:
    event: DomainEvent
    handler: str
    error: str

    def to_dict(self) -> dict:
        return {
            "event": self.event.name,
            "tenantId": self.event.tenant_id,
            "payload": self.event.payload,
            "occurredAt": self.event.occurred_at.isoformat(),
            "handler": self.handler,
            "error": self.error,
        }


class EventOutbox:
    """In-process outbox.

    Services ``publish`` events once their state change is persisted and then
    ``flush``. Each handler runs in isolation: an exception is logged and kept
    in ``failed`` so it can be inspected or retried, and the remaining
    handlers still run.

    The outbox is shared by every request thread. The lock guards the pending
    queue and the failure log only; handlers run outside it so they may
    publish in turn. At most ``max_failed`` failures are kept.
    """

    def __init__(self, *, max_failed: int = MAX_FAILED_DELIVERIES):
        if max_failed < 1:
            raise ValueError("max_failed must be >= 1")
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: list[DomainEvent] = []
        self._failed: deque[FailedDelivery] = deque(maxlen=max_failed)
        self._lock = threading.Lock()
        self.dropped_failures = 0

    def subscribe(self, name: str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[name].append(handler)

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            self._pending.append(event)

    @property
    def pending(self) -> list[DomainEvent]:
        with self._lock:
            return list(self._pending)

    @property
    def failed(self) -> list[FailedDelivery]:
        with self._lock:
            return list(self._failed)

    def flush(self) -> int:
        """Deliver every pending event; returns how many deliveries failed."""
        with self._lock:
            events, self._pending = self._pending, []
        failures = 0
        for event in events:
            for handler in self._handlers_for(event.name):
                if not self._deliver(event, handler):
                    failures += 1
        return failures

    def retry_failed(self, tenant_id: Optional[str] = None) -> int:
        """Redeliver logged failures, optionally only one tenant's; returns how many failed again."""
        with self._lock:
            retry = [f for f in self._failed if tenant_id is None or f.event.tenant_id == tenant_id]
            kept = [f for f in self._failed if tenant_id is not None and f.event.tenant_id != tenant_id]
            self._failed.clear()
            self._failed.extend(kept)
        failures = 0
        for item in retry:
            handler = self._find_handler(item.event.name, item.handler)
            if handler is None:
                self._record_failure(item)
                failures += 1
                continue
            if not self._deliver(item.event, handler):
                failures += 1
        return failures

    def _handlers_for(self, name: str) -> list[EventHandler]:
        with self._lock:
            return list(self._handlers.get(name, []))

    def _find_handler(self, name: str, handler_name: str) -> Optional[EventHandler]:
        for handler in self._handlers_for(name):
            if _handler_name(handler) == handler_name:
                return handler
        return None

    def _record_failure(self, item: FailedDelivery) -> None:
        with self._lock:
            full = len(self._failed) == self._failed.maxlen
            if full:
                dropped = self._failed[0]
                self.dropped_failures += 1
            self._failed.append(item)
        if full:
            logger.warning(
                "failed delivery log full; dropped %s for %s",
                dropped.handler,
                dropped.event.name,
                extra={"tenant_id": dropped.event.tenant_id, "event": dropped.event.name},
            )

    def _deliver(self, event: DomainEvent, handler: EventHandler) -> bool:
        try:
            handler(event)
            return True
        except Exception as exc:
            logger.exception(
                "event handler %s failed for %s",
                _handler_name(handler),
                event.name,
                extra={"tenant_id": event.tenant_id, "event": event.name},
            )
            self._record_failure(FailedDelivery(event=event, handler=_handler_name(handler), error=str(exc)))
            return False


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
