"""
GameCollectors Backend: Webhook Dispatcher Unit Tests
=====================================================

What:  Tests for WebhookDispatcher with an injected registration lookup and
       httpx.MockTransport standing in for the recipients.

What we test:
    ✅ Every registration receives one POST with the JSON payload
    ✅ A failing recipient (5xx, connection error, timeout) does not stop the others
    ✅ A recipient that stalls is cut off at the overall delivery timeout
    ✅ No registrations means no HTTP calls
    ✅ Owner scoping only when enabled
    ✅ Lookup failures raise from dispatch() and are logged by dispatch_detached()
"""

import asyncio
import json
import time
from types import SimpleNamespace

import httpx
import pytest

from gamecollectors.exceptions import StorageUnavailableError
from gamecollectors.models.webhook import WebhookEventType
from gamecollectors.services.webhook_dispatcher import WebhookDispatcher

PAYLOAD = {"message": "Webhook: on-create-game", "resource": {"resourceId": "n64/goldeneye"}}


def registrations(*urls):
    return [SimpleNamespace(recipient_url=url) for url in urls]


def static_lookup(regs):
    calls = []

    async def lookup(event_type, owner):
        calls.append((event_type, owner))
        return regs

    lookup.calls = calls
    return lookup


class Recorder:
    """MockTransport handler: records requests and answers per host."""

    def __init__(self, answers=None):
        self.requests = []
        self.answers = answers or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.answers.get(request.url.host, 200)
        if isinstance(answer, Exception):
            raise answer
        return httpx.Response(answer)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_delivers_to_every_registration(self):
        recorder = Recorder()
        dispatcher = WebhookDispatcher(
            lookup=static_lookup(registrations("http://a.test/hook", "http://b.test/hook")),
            transport=httpx.MockTransport(recorder),
        )

        result = await dispatcher.dispatch(WebhookEventType.ON_CREATE_GAME, PAYLOAD)

        assert sorted(result.delivered) == ["http://a.test/hook", "http://b.test/hook"]
        assert result.failed == []
        assert len(recorder.requests) == 2
        for request in recorder.requests:
            assert request.method == "POST"
            assert request.headers["content-type"] == "application/json"
            assert json.loads(request.content) == PAYLOAD

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self):
        recorder = Recorder(
            answers={
                "down.test": 500,
                "refused.test": httpx.ConnectError("connection refused"),
                "slow.test": httpx.ReadTimeout("timed out"),
            }
        )
        dispatcher = WebhookDispatcher(
            lookup=static_lookup(
                registrations(
                    "http://down.test/h",
                    "http://refused.test/h",
                    "http://slow.test/h",
                    "http://ok.test/h",
                )
            ),
            transport=httpx.MockTransport(recorder),
        )

        result = await dispatcher.dispatch("on-update-game", PAYLOAD)

        assert result.delivered == ["http://ok.test/h"]
        assert sorted(result.failed) == [
            "http://down.test/h",
            "http://refused.test/h",
            "http://slow.test/h",
        ]
        assert result.attempted == 4
        assert len(recorder.requests) == 4

    @pytest.mark.asyncio
    async def test_slow_recipient_is_cut_off_at_the_timeout(self):
        async def stalls(request):
            if request.url.host == "stall.test":
                await asyncio.sleep(5)
            return httpx.Response(200)

        dispatcher = WebhookDispatcher(
            lookup=static_lookup(registrations("http://stall.test/h", "http://ok.test/h")),
            timeout=0.05,
            transport=httpx.MockTransport(stalls),
        )

        started = time.monotonic()
        result = await dispatcher.dispatch(WebhookEventType.ON_CREATE_GAME, PAYLOAD)

        assert time.monotonic() - started < 2
        assert result.delivered == ["http://ok.test/h"]
        assert result.failed == ["http://stall.test/h"]

    @pytest.mark.asyncio
    async def test_no_registrations_means_no_calls(self):
        recorder = Recorder()
        dispatcher = WebhookDispatcher(
            lookup=static_lookup([]),
            transport=httpx.MockTransport(recorder),
        )

        result = await dispatcher.dispatch(WebhookEventType.HOOK_TEST_0, {"ping": True})

        assert result.attempted == 0
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_lookup_is_global_by_default(self):
        lookup = static_lookup([])
        dispatcher = WebhookDispatcher(lookup=lookup, owner_scoped=False)

        await dispatcher.dispatch(WebhookEventType.ON_DELETE_GAME, PAYLOAD, owner="ann@example.com")

        assert lookup.calls == [("on-delete-game", None)]

    @pytest.mark.asyncio
    async def test_owner_scoped_lookup(self):
        lookup = static_lookup([])
        dispatcher = WebhookDispatcher(lookup=lookup, owner_scoped=True)

        await dispatcher.dispatch(WebhookEventType.ON_DELETE_GAME, PAYLOAD, owner="ann@example.com")

        assert lookup.calls == [("on-delete-game", "ann@example.com")]

    @pytest.mark.asyncio
    async def test_lookup_failure_raises(self):
        async def broken(event_type, owner):
            raise StorageUnavailableError()

        dispatcher = WebhookDispatcher(lookup=broken)
        with pytest.raises(StorageUnavailableError):
            await dispatcher.dispatch(WebhookEventType.ON_CREATE_GAME, PAYLOAD)


class TestDispatchDetached:
    @pytest.mark.asyncio
    async def test_lookup_failure_is_logged_not_raised(self, caplog):
        async def broken(event_type, owner):
            raise StorageUnavailableError()

        dispatcher = WebhookDispatcher(lookup=broken)
        await dispatcher.dispatch_detached(WebhookEventType.ON_CREATE_GAME, PAYLOAD)

        assert "skipped" in caplog.text

    @pytest.mark.asyncio
    async def test_delivers_like_dispatch(self):
        recorder = Recorder()
        dispatcher = WebhookDispatcher(
            lookup=static_lookup(registrations("http://a.test/hook")),
            transport=httpx.MockTransport(recorder),
        )

        await dispatcher.dispatch_detached(WebhookEventType.HOOK_TEST_1, {"hello": "world"})

        assert len(recorder.requests) == 1
        assert json.loads(recorder.requests[0].content) == {"hello": "world"}
