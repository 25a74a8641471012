# ============================================================================
# LIFECYCLE EVENTS
# ============================================================================
# STATUS: Core - Job lifecycle event fan-out
# PURPOSE: Publish waiting/active/completed/failed events to observers
# EXPORTS: LifecycleEventBus, WebhookEventReporter
# ============================================================================
"""
Lifecycle Events

LifecycleEventBus fans each event out to its subscribers. A subscriber is
any callable taking a LifecycleEvent, sync or async. Subscriber failures
are logged and never reach the job.

WebhookEventReporter is the built-in subscriber that POSTs events to an
external monitoring endpoint (EVENTS_WEBHOOK_URL) with retries.
"""

import asyncio
import inspect
from typing import Any, Callable, List, Optional

import httpx

from util_logger import LoggerFactory, ComponentType
from .contracts import LifecycleEvent

logger = LoggerFactory.create_logger(ComponentType.WORKER, "LifecycleEvents")

Subscriber = Callable[[LifecycleEvent], Any]


class LifecycleEventBus:
    """In-process event fan-out."""

    def __init__(self, subscribers: Optional[List[Subscriber]] = None):
        self._subscribers: List[Subscriber] = list(subscribers or [])

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def publish(self, event: LifecycleEvent) -> None:
        """Deliver an event to every subscriber, in registration order."""
        for subscriber in self._subscribers:
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    f"Lifecycle subscriber {getattr(subscriber, '__name__', type(subscriber).__name__)} "
                    f"failed on {event.event_type.value} for job {event.job_id}: {e}",
                    exc_info=True,
                )

    def __len__(self) -> int:
        return len(self._subscribers)


class WebhookEventReporter:
    """
    Posts lifecycle events to a monitoring endpoint.

    Uses HTTP POST with retry on timeouts, transport errors and non-2xx
    responses.
    """

    def __init__(self, url: str, retries: int = 3, timeout_seconds: float = 30.0):
        self.url = url
        self.retries = retries
        self.timeout_seconds = timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __call__(self, event: LifecycleEvent) -> bool:
        return await self.report(event)

    async def report(self, event: LifecycleEvent) -> bool:
        """
        POST one event.

        Returns:
            True if the endpoint accepted it, False after all retries failed
        """
        client = await self._get_client()
        last_error = None

        for attempt in range(self.retries):
            try:
                response = await client.post(self.url, json=event.to_dict())
                if 200 <= response.status_code < 300:
                    logger.debug(
                        f"Event {event.event_type.value} for job {event.job_id} delivered"
                    )
                    return True
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    f"Event webhook returned {response.status_code}: {response.text[:200]}"
                )
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                logger.warning(f"Event webhook timeout (attempt {attempt + 1}/{self.retries}): {e}")
            except httpx.RequestError as e:
                last_error = f"Request error: {e}"
                logger.warning(
                    f"Event webhook request failed (attempt {attempt + 1}/{self.retries}): {e}"
                )

        logger.error(
            f"Failed to deliver {event.event_type.value} event for job {event.job_id} "
            f"after {self.retries} attempts: {last_error}"
        )
        return False

    async def __aenter__(self) -> "WebhookEventReporter":
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
