"""Minimal Chrome DevTools Protocol client.

Target discovery goes through the browser's HTTP endpoints (requests); the
protocol itself runs over one aiohttp WebSocket per target. Start the browser
with `--remote-debugging-port=9222` to expose both.
"""
from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import requests

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9222


class CDPError(Exception):
    """A protocol-level failure: an error reply, a timeout or a dropped socket."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


def _endpoint(host: str, port: int, path: str) -> str:
    return f"http://{host}:{port}{path}"


def browser_version(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, timeout: float = 5) -> Dict[str, Any]:
    resp = requests.get(_endpoint(host, port, "/json/version"), timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def list_targets(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, timeout: float = 5) -> List[Dict[str, Any]]:
    resp = requests.get(_endpoint(host, port, "/json/list"), timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def new_target(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    url: str = "about:blank",
    timeout: float = 5,
) -> Dict[str, Any]:
    # Recent Chrome rejects GET on /json/new.
    resp = requests.put(_endpoint(host, port, "/json/new"), params={"url": url}, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


class CDPSession:
    """Request/response and event dispatch over a single target's WebSocket.

    Replies are matched to send() calls by message id. Events are delivered to
    futures registered with expect_event(); register before sending the
    command that triggers the event, or a fast browser can fire it first.
    """

    def __init__(self, ws_url: str, timeout: float = 30.0) -> None:
        self.ws_url = ws_url
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._waiters: List[Tuple[str, asyncio.Future]] = []
        self._http: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "CDPSession":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        self._http = aiohttp.ClientSession()
        try:
            # Page payloads (DOM dumps, screenshots) exceed aiohttp's 4 MiB default.
            self._ws = await self._http.ws_connect(self.ws_url, max_msg_size=0)
        except aiohttp.ClientError as exc:
            await self._http.close()
            self._http = None
            raise CDPError(f"cannot connect to {self.ws_url}: {exc}") from exc
        self._reader = asyncio.create_task(self._read_loop())

    async def close(self) -> None:
        try:
            if self._ws is not None:
                await self._ws.close()
            if self._reader is not None:
                reader, self._reader = self._reader, None
                await reader
        finally:
            if self._http is not None:
                await self._http.close()
                self._http = None

    async def send(self, method: str, timeout: Optional[float] = None, **params: Any) -> Dict[str, Any]:
        if not self.connected:
            raise CDPError(f"{method}: session is not connected")
        msg_id = next(self._ids)
        fut = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = fut
        try:
            await self._ws.send_json({"id": msg_id, "method": method, "params": params})
            return await asyncio.wait_for(fut, timeout or self.timeout)
        except asyncio.TimeoutError:
            raise CDPError(f"{method}: no reply within {timeout or self.timeout}s") from None
        finally:
            self._pending.pop(msg_id, None)

    def expect_event(self, method: str) -> asyncio.Future:
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((method, fut))
        return fut

    async def wait_event(self, fut: asyncio.Future, timeout: Optional[float] = None) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(fut, timeout or self.timeout)
        except asyncio.TimeoutError:
            raise CDPError(f"event not received within {timeout or self.timeout}s") from None
        finally:
            self._waiters = [(m, f) for m, f in self._waiters if f is not fut]

    async def navigate(self, url: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        loaded = self.expect_event("Page.loadEventFired")
        result = await self.send("Page.navigate", url=url)
        if result.get("errorText"):
            loaded.cancel()
            self._waiters = [(m, f) for m, f in self._waiters if f is not loaded]
            raise CDPError(f"navigation to {url} failed: {result['errorText']}")
        await self.wait_event(loaded, timeout)
        return result

    async def evaluate(self, expression: str) -> Any:
        result = await self.send(
            "Runtime.evaluate",
            expression=expression,
            returnByValue=True,
            awaitPromise=True,
        )
        if "exceptionDetails" in result:
            details = result["exceptionDetails"]
            text = (details.get("exception") or {}).get("description") or details.get("text")
            raise CDPError(f"script raised: {text}")
        return (result.get("result") or {}).get("value")

    async def _read_loop(self) -> None:
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        message = json.loads(msg.data)
                    except ValueError:
                        print(f"cdp: skipping malformed frame {msg.data[:80]!r}")
                        continue
                    if isinstance(message, dict):
                        self._dispatch(message)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    break
        finally:
            self._fail_all(CDPError("connection closed"))
            # Without a reader nothing would ever answer, so the socket goes too.
            if not self._ws.closed:
                await self._ws.close()

    def _dispatch(self, message: Dict[str, Any]) -> None:
        if "id" in message:
            fut = self._pending.get(message["id"])
            if fut is None or fut.done():
                return
            if "error" in message:
                err = message["error"]
                fut.set_exception(CDPError(err.get("message", "unknown error"), err.get("code")))
            else:
                fut.set_result(message.get("result", {}))
            return

        method = message.get("method")
        for name, fut in self._waiters:
            if name == method and not fut.done():
                fut.set_result(message.get("params", {}))

    def _fail_all(self, exc: CDPError) -> None:
        for fut in list(self._pending.values()):
            if not fut.done():
                fut.set_exception(exc)
        for _, fut in self._waiters:
            if not fut.done():
                fut.set_exception(exc)
        self._pending.clear()
        self._waiters.clear()
