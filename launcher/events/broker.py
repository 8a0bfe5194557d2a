"""
Status Message Event Broker

진행 중인 런치(job)의 상태 이벤트를 구독자에게 팬아웃하는 프로세스 단위 브로커입니다.
큐가 아닌 best-effort 전달: 구독자가 없을 때 발행된 이벤트는 버려집니다.
"""

from __future__ import annotations

import asyncio
import threading
from typing import List, Optional

import structlog

from ..core.metrics import EVENTS_DROPPED, EVENTS_PUBLISHED
from .models import StatusMessageEvent

logger = structlog.get_logger(__name__)

_CLOSED = object()


class EventSubscription:
    """구독자 한 명의 이벤트 스트림 (job_id가 없으면 모든 job 수신)"""

    def __init__(self, broker: "StatusMessageEventBroker", job_id: Optional[str], maxsize: int):
        self.job_id = job_id
        self._broker = broker
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, event: StatusMessageEvent) -> bool:
        return self.job_id is None or event.job_id == self.job_id

    def offer(self, event: StatusMessageEvent) -> None:
        """Deliver into the subscriber's own event loop without blocking the publisher."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(event)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._put, event)

    def _put(self, item: object) -> None:
        if self._closed and item is not _CLOSED:
            return
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            if item is _CLOSED:
                # make room so a waiting consumer observes the close
                self._queue.get_nowait()
                self._queue.put_nowait(item)
                return
            EVENTS_DROPPED.inc()
            logger.warning("status_event_dropped", job_id=getattr(item, "job_id", None), subscriber_job=self.job_id)

    async def get(self, timeout: Optional[float] = None) -> Optional[StatusMessageEvent]:
        """Next event, or None once the subscription is closed."""
        item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        self._broker.unsubscribe(self)
        self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(_CLOSED)
        else:
            self._loop.call_soon_threadsafe(self._put, _CLOSED)

    def __aiter__(self) -> "EventSubscription":
        return self

    async def __anext__(self) -> StatusMessageEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def __enter__(self) -> "EventSubscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class StatusMessageEventBroker:
    """런치 상태 이벤트 팬아웃 브로커

    여러 오케스트레이션이 동시에 send() 해도 서로를 막지 않으며,
    send()는 구독자가 없어도 예외를 발생시키지 않습니다.
    """

    def __init__(self, max_queue_size: int = 1000):
        self.max_queue_size = max_queue_size
        self._subscriptions: List[EventSubscription] = []
        self._lock = threading.Lock()
        self.is_initialized = False

    async def initialize(self) -> None:
        """브로커 초기화"""
        self.is_initialized = True
        logger.info("StatusMessageEventBroker initialized")

    async def close(self) -> None:
        """모든 구독 종료"""
        with self._lock:
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription._mark_closed()
        self.is_initialized = False
        logger.info("StatusMessageEventBroker closed", subscribers=len(subscriptions))

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, job_id: Optional[str] = None) -> EventSubscription:
        subscription = EventSubscription(self, job_id, self.max_queue_size)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: EventSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def send(self, event: StatusMessageEvent) -> None:
        """이벤트 발행 (non-blocking, 절대 예외를 던지지 않음)"""
        try:
            EVENTS_PUBLISHED.labels(kind=event.kind.value).inc()
            with self._lock:
                targets = [s for s in self._subscriptions if s.matches(event)]
            for subscription in targets:
                subscription.offer(event)
        except Exception as e:  # noqa: BLE001
            logger.warning("status_event_send_failed", job_id=getattr(event, "job_id", None), error=str(e))
