"""
Firebase Realtime Database client for the voters, candidates and elections
collections.

Uses the REST interface over httpx:
- one-shot reads: ``GET {base}/{path}.json``
- subscriptions: the same URL with ``Accept: text/event-stream``; the server
  pushes ``put``/``patch`` events which are folded into a local snapshot and
  handed to the subscriber after every change.

Every subscription returns a ``Subscription`` handle whose ``cancel()`` stops
the listener. ``subscription()`` is the scoped form that always releases it.
The gateway never writes to the realtime database.
"""

import asyncio
import copy
import inspect
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, Callable, Optional
from urllib.parse import quote

import httpx
import structlog

from core.config import settings
from core.exceptions import ConnectivityError, DataIntegrityError

logger = structlog.get_logger(__name__)

# Collection paths
VOTERS_PATH = "voters"
CANDIDATES_PATH = "candidates"
ELECTIONS_PATH = "elections"

MAX_RECONNECT_DELAY_SECONDS = 30.0

ChangeCallback = Callable[[Any], Optional[Awaitable[None]]]
ErrorCallback = Callable[[Exception], Optional[Awaitable[None]]]


def apply_event(snapshot: Any, event: str, payload: dict[str, Any]) -> Any:
    """
    Fold one streaming event into a snapshot and return the new snapshot.

    ``put`` replaces the value at ``path``; ``patch`` merges each child of
    ``data`` under ``path``. A ``None`` value deletes, as in Firebase.
    """
    if not isinstance(payload, dict) or "path" not in payload:
        raise DataIntegrityError(f"Malformed {event} event payload")

    keys = _split_path(payload["path"])
    data = payload.get("data")

    if event == "put":
        return _set_path(snapshot, keys, data)

    if event == "patch":
        if not isinstance(data, dict):
            raise DataIntegrityError("Patch event data must be an object")
        for child, value in data.items():
            snapshot = _set_path(snapshot, keys + _split_path(child), value)
        return snapshot

    return snapshot


def _split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _set_path(node: Any, keys: list[str], value: Any) -> Any:
    if not keys:
        return copy.deepcopy(value)

    # Firebase serialises integer-keyed children as arrays
    if isinstance(node, list):
        node = {str(index): item for index, item in enumerate(node) if item is not None}
    elif not isinstance(node, dict):
        node = {}

    head, rest = keys[0], keys[1:]
    child = _set_path(node.get(head), rest, value)
    if child is None:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None


async def iter_server_sent_events(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Group a text/event-stream body into (event, data) pairs."""
    event: Optional[str] = None
    data: list[str] = []

    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if event is not None or data:
                yield event or "message", "\n".join(data)
            event, data = None, []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)

    if event is not None or data:
        yield event or "message", "\n".join(data)


async def _invoke(callback: Optional[Callable[[Any], Any]], argument: Any) -> None:
    if callback is None:
        return
    result = callback(argument)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """Cancellation handle for a realtime subscription."""

    def __init__(self, path: str, task: asyncio.Task):
        self.path = path
        self._task: Optional[asyncio.Task] = task

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def cancel(self) -> None:
        """Stop the listener. Safe to call more than once."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.debug("realtime_unsubscribed", path=self.path)


class RealtimeDatabase:
    """Read-only client for a Firebase Realtime Database."""

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 10.0,
        max_reconnects: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._auth_token = auth_token
        self._timeout = timeout
        self._max_reconnects = max_reconnects
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def _url(self, path: str) -> str:
        return f"/{quote(path.strip('/'))}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    async def read(self, path: str) -> Any:
        """
        Read the current value at ``path`` once.

        Raises:
            ConnectivityError: request failed or was refused
            DataIntegrityError: body is not JSON
        """
        try:
            response = await self._client.get(self._url(path), params=self._params())
        except httpx.HTTPError as e:
            logger.error("realtime_read_failed", path=path, error=str(e))
            raise ConnectivityError(f"Could not read {path}") from e

        if response.status_code != 200:
            logger.error("realtime_read_rejected", path=path, status_code=response.status_code)
            raise ConnectivityError(f"Realtime database refused read of {path} ({response.status_code})")

        try:
            return response.json()
        except ValueError as e:
            raise DataIntegrityError(f"Realtime database returned invalid JSON for {path}") from e

    def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Start listening to ``path``.

        ``on_change`` receives the full snapshot after every change (first
        call carries the initial value). ``on_error`` receives the exception
        that ended the subscription, if any.
        """
        task = asyncio.create_task(
            self._listen(path, on_change, on_error),
            name=f"realtime:{path}",
        )
        logger.debug("realtime_subscribed", path=path)
        return Subscription(path, task)

    @asynccontextmanager
    async def subscription(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> AsyncGenerator[Subscription, None]:
        """
        Scoped subscription, cancelled when the block exits.

        Usage:
            async with database.subscription("candidates", queue.put_nowait):
                ...
        """
        handle = self.subscribe(path, on_change, on_error)
        try:
            yield handle
        finally:
            await handle.cancel()

    async def _listen(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        snapshot: Any = None
        failures = 0
        delay = 1.0

        while True:
            try:
                async with self._client.stream(
                    "GET",
                    self._url(path),
                    params=self._params(),
                    headers={"Accept": "text/event-stream"},
                    timeout=httpx.Timeout(self._timeout, read=None),
                ) as response:
                    if response.status_code != 200:
                        raise ConnectivityError(
                            f"Realtime database refused subscription to {path} ({response.status_code})"
                        )

                    async for event, data in iter_server_sent_events(response.aiter_lines()):
                        if event in ("cancel", "auth_revoked"):
                            raise ConnectivityError(f"Subscription to {path} ended by server: {event}")
                        if event not in ("put", "patch"):
                            continue

                        try:
                            payload = json.loads(data)
                        except ValueError as e:
                            raise DataIntegrityError(f"Invalid {event} event on {path}") from e

                        snapshot = apply_event(snapshot, event, payload)
                        failures = 0
                        delay = 1.0
                        await _invoke(on_change, copy.deepcopy(snapshot))

                failures += 1
                logger.info("realtime_stream_closed", path=path)

            except httpx.TransportError as e:
                failures += 1
                logger.warning("realtime_stream_interrupted", path=path, error=str(e), attempt=failures)

            except Exception as e:
                logger.error("realtime_subscription_failed", path=path, error=str(e))
                await _invoke(on_error, e)
                return

            if failures > self._max_reconnects:
                logger.error("realtime_reconnects_exhausted", path=path, attempts=failures)
                await _invoke(on_error, ConnectivityError(f"Lost subscription to {path}"))
                return

            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_RECONNECT_DELAY_SECONDS)

    async def close(self) -> None:
        await self._client.aclose()


# Global client instance (lazy-initialized)
_database: RealtimeDatabase | None = None


def get_realtime_database() -> RealtimeDatabase:
    """
    Get or create the realtime database client.

    The client is singleton and reused across requests.
    """
    global _database

    if _database is None:
        _database = RealtimeDatabase(
            base_url=settings.FIREBASE_DATABASE_URL,
            auth_token=settings.FIREBASE_AUTH_TOKEN,
            timeout=settings.REALTIME_TIMEOUT_SECONDS,
            max_reconnects=settings.REALTIME_MAX_RECONNECTS,
        )
        logger.info("realtime_database_initialized", url=settings.FIREBASE_DATABASE_URL)

    return _database


async def close_realtime_database() -> None:
    """
    Close the realtime database client.

    Should be called during application shutdown.
    """
    global _database

    if _database is not None:
        await _database.close()
        _database = None
        logger.info("realtime_database_closed")
