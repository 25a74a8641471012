"""
Lifecycle event tests: bus fan-out and the webhook reporter.
"""

import asyncio

import httpx

from core.models.enums import LifecycleEventType
from worker import JobMessage, LifecycleEvent, LifecycleEventBus, WebhookEventReporter
from tests.factories.model_factories import make_job_record
from tests.factories.fake_processors import EventRecorder


def _event():
    return LifecycleEvent.waiting(JobMessage.from_record(make_job_record()))


class TestLifecycleEventBus:

    def test_sync_and_async_subscribers(self):
        received = []

        async def async_subscriber(event):
            received.append(("async", event.event_type))

        bus = LifecycleEventBus([lambda e: received.append(("sync", e.event_type))])
        bus.subscribe(async_subscriber)
        asyncio.run(bus.publish(_event()))

        assert received == [
            ("sync", LifecycleEventType.WAITING),
            ("async", LifecycleEventType.WAITING),
        ]
        assert len(bus) == 2

    def test_failing_subscriber_does_not_stop_others(self):
        recorder = EventRecorder()

        def broken(event):
            raise RuntimeError("monitoring down")

        asyncio.run(LifecycleEventBus([broken, recorder]).publish(_event()))

        assert len(recorder.events) == 1

    def test_empty_bus(self):
        asyncio.run(LifecycleEventBus().publish(_event()))


class TestWebhookEventReporter:

    def _reporter(self, handler, retries=3):
        reporter = WebhookEventReporter("https://monitor.test/events", retries=retries, timeout_seconds=1)
        reporter._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return reporter

    def test_delivers_event_json(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(202)

        async def main():
            async with self._reporter(handler) as reporter:
                return await reporter(_event())

        assert asyncio.run(main()) is True
        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert b'"event_type":"waiting"' in requests[0].content.replace(b" ", b"")

    def test_retries_server_errors(self):
        statuses = iter([500, 503, 200])

        def handler(request):
            return httpx.Response(next(statuses))

        async def main():
            reporter = self._reporter(handler)
            try:
                return await reporter.report(_event())
            finally:
                await reporter.close()

        assert asyncio.run(main()) is True

    def test_gives_up_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        async def main():
            reporter = self._reporter(handler, retries=2)
            try:
                return await reporter.report(_event())
            finally:
                await reporter.close()

        assert asyncio.run(main()) is False
        assert len(calls) == 2
