#!/usr/bin/env python3

from __future__ import annotations

import json
import unittest
from typing import Callable, List

import httpx

from recipe_api.core.errors import ModelProtocolError, ModelUnavailable
from recipe_api.services.model_client import (
    Attempting,
    Failed,
    FatalFailure,
    OllamaClient,
    RetryableFailure,
    Succeeded,
    Success,
    advance,
)

BASE = "http://ollama.test:11434"


def _ok(content: str) -> httpx.Response:
    return httpx.Response(200, json={"message": {"role": "assistant", "content": content}, "done": True})


class AdvanceTests(unittest.TestCase):
    def test_success_terminates(self) -> None:
        self.assertEqual(advance(Attempting(1), Success("{}"), 2), Succeeded("{}"))

    def test_fatal_terminates_without_retry(self) -> None:
        state = advance(Attempting(0), FatalFailure("404", status=404), 2)
        self.assertIsInstance(state, Failed)

    def test_retryable_advances_until_exhausted(self) -> None:
        failure = RetryableFailure("500", status=500)
        self.assertEqual(advance(Attempting(0), failure, 2), Attempting(1, last_failure=failure))
        self.assertEqual(advance(Attempting(1), failure, 2), Attempting(2, last_failure=failure))
        self.assertEqual(advance(Attempting(2), failure, 2), Failed(failure))

    def test_failed_state_maps_to_errors(self) -> None:
        err = Failed(RetryableFailure("slow", timed_out=True)).to_error()
        self.assertIsInstance(err, ModelUnavailable)
        self.assertEqual(err.status_code, 504)
        err = Failed(FatalFailure("bad", status=400)).to_error()
        self.assertIsInstance(err, ModelProtocolError)
        self.assertEqual(err.status_code, 500)


class OllamaClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler: Callable[[httpx.Request], httpx.Response]) -> OllamaClient:
        self.sleeps: List[float] = []

        async def fake_sleep(seconds: float) -> None:
            self.sleeps.append(seconds)

        return OllamaClient(
            BASE,
            "llama3.2:3b",
            timeout=5,
            max_retries=2,
            backoff=1.0,
            transport=httpx.MockTransport(handler),
            sleep=fake_sleep,
        )

    async def test_request_shape(self) -> None:
        seen: List[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(str(request.url), f"{BASE}/api/chat")
            seen.append(json.loads(request.content))
            return _ok('{"steps": []}')

        content = await self._client(handler).call("SYS", "USER")
        self.assertEqual(content, '{"steps": []}')
        body = seen[0]
        self.assertEqual(body["model"], "llama3.2:3b")
        self.assertEqual(body["messages"], [{"role": "system", "content": "SYS"}, {"role": "user", "content": "USER"}])
        self.assertFalse(body["stream"])
        self.assertEqual(body["format"], "json")
        self.assertEqual(self.sleeps, [])

    async def test_two_500s_then_success(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(500, text="overloaded")
            return _ok('{"steps": ["Hervir agua"]}')

        content = await self._client(handler).call("s", "u")
        self.assertEqual(content, '{"steps": ["Hervir agua"]}')
        self.assertEqual(len(calls), 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])

    async def test_500_on_every_attempt(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        with self.assertRaises(ModelUnavailable) as ctx:
            await self._client(handler).call("s", "u")
        self.assertEqual(len(calls), 3)
        self.assertEqual(ctx.exception.upstream_status, 500)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("500", ctx.exception.message)
        self.assertFalse(ctx.exception.timed_out)

    async def test_non_500_error_is_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404, text="model not found")

        with self.assertRaises(ModelProtocolError) as ctx:
            await self._client(handler).call("s", "u")
        self.assertEqual(len(calls), 1)
        self.assertEqual(ctx.exception.upstream_status, 404)
        self.assertEqual(self.sleeps, [])

    async def test_timeouts_exhaust_into_gateway_timeout(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with self.assertRaises(ModelUnavailable) as ctx:
            await self._client(handler).call("s", "u")
        self.assertEqual(len(calls), 3)
        self.assertTrue(ctx.exception.timed_out)
        self.assertEqual(ctx.exception.status_code, 504)

    async def test_transport_error_is_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return _ok("{}")

        self.assertEqual(await self._client(handler).call("s", "u"), "{}")
        self.assertEqual(len(calls), 2)
        self.assertEqual(self.sleeps, [1.0])

    async def test_missing_message_content_is_protocol_error(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"done": True})

        with self.assertRaises(ModelProtocolError):
            await self._client(handler).call("s", "u")
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
