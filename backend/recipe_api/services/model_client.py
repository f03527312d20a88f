# recipe_api/services/model_client.py
# Ollama chat client with bounded retries.
#
# Per request:  Attempting(0) -> ... -> Attempting(max_retries) -> Succeeded | Failed
# - HTTP 500, timeouts, transport errors: retryable while attempts remain
# - any other non-2xx or an unreadable 2xx body: fatal, no retry
# - sleep backoff * attempt_index before each retry (1s, 2s with the defaults)

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Union

import httpx

from recipe_api.core.config import settings
from recipe_api.core.errors import ModelProtocolError, ModelUnavailable, UpstreamError

log = logging.getLogger(__name__)


# --- attempt outcomes ---

@dataclass(frozen=True)
class Success:
    content: str


@dataclass(frozen=True)
class RetryableFailure:
    reason: str
    timed_out: bool = False
    status: Optional[int] = None


@dataclass(frozen=True)
class FatalFailure:
    reason: str
    status: Optional[int] = None


Outcome = Union[Success, RetryableFailure, FatalFailure]


# --- call states ---

@dataclass(frozen=True)
class Attempting:
    index: int
    last_failure: Optional[RetryableFailure] = None


@dataclass(frozen=True)
class Succeeded:
    content: str


@dataclass(frozen=True)
class Failed:
    failure: Union[RetryableFailure, FatalFailure]

    def to_error(self) -> UpstreamError:
        f = self.failure
        if isinstance(f, FatalFailure):
            return ModelProtocolError(f.reason, upstream_status=f.status)
        return ModelUnavailable(f.reason, timed_out=f.timed_out, upstream_status=f.status)


State = Union[Attempting, Succeeded, Failed]


def advance(state: Attempting, outcome: Outcome, max_retries: int) -> State:
    """Transition after one attempt. Pure: no I/O, no clock."""
    if isinstance(outcome, Success):
        return Succeeded(outcome.content)
    if isinstance(outcome, FatalFailure):
        return Failed(outcome)
    if state.index < max_retries:
        return Attempting(state.index + 1, last_failure=outcome)
    return Failed(outcome)


def _content_of(resp: httpx.Response) -> Outcome:
    try:
        data = resp.json()
    except ValueError:
        return FatalFailure("Invalid response from Ollama: body is not JSON", status=resp.status_code)
    message = data.get("message") if isinstance(data, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content:
        return FatalFailure("Invalid response from Ollama: missing message content", status=resp.status_code)
    return Success(content)


class OllamaClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or settings.OLLAMA_MODEL
        self.timeout = settings.MODEL_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = settings.MODEL_MAX_RETRIES if max_retries is None else max_retries
        self.backoff = settings.MODEL_BACKOFF_SECONDS if backoff is None else backoff
        self._transport = transport
        self._sleep = sleep

    def _payload(self, system: str, user: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": False,
            "format": "json",
        }

    async def _attempt(self, index: int, payload: dict) -> Outcome:
        url = f"{self.base_url}/api/chat"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as cli:
                resp = await cli.post(url, json=payload)
        except httpx.TimeoutException:
            return RetryableFailure(
                f"Request timed out after {self.timeout:g}s. The Ollama server may be slow or unreachable.",
                timed_out=True,
            )
        except httpx.TransportError as e:
            return RetryableFailure(f"Cannot reach Ollama at {self.base_url}: {e.__class__.__name__}: {e}")

        if resp.status_code == 500:
            return RetryableFailure(f"Ollama API error: 500 {resp.reason_phrase}", status=500)
        if not resp.is_success:
            return FatalFailure(f"Ollama API error: {resp.status_code} {resp.reason_phrase}", status=resp.status_code)
        return _content_of(resp)

    async def call(self, system: str, user: str) -> str:
        """Send a system+user chat and return the raw assistant text."""
        payload = self._payload(system, user)
        state: State = Attempting(0)
        history: List[Outcome] = []

        while isinstance(state, Attempting):
            if state.index > 0:
                delay = self.backoff * state.index
                log.warning(
                    "Ollama attempt %d failed (%s); retrying in %.1fs",
                    state.index, state.last_failure.reason if state.last_failure else "-", delay,
                )
                await self._sleep(delay)
            outcome = await self._attempt(state.index, payload)
            history.append(outcome)
            state = advance(state, outcome, self.max_retries)

        if isinstance(state, Succeeded):
            log.info("Ollama replied after %d attempt(s) (%d chars)", len(history), len(state.content))
            return state.content

        log.error("Ollama call failed after %d attempt(s): %s", len(history), state.failure.reason)
        raise state.to_error()
