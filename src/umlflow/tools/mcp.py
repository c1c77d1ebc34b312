"""Model Context Protocol tool provider built on the ``mcp`` SDK.

The SDK is asynchronous while tool calls arrive from worker threads, so the
provider owns a private event loop running on a daemon thread. One long-lived
task keeps the streamable HTTP transport and the client session open until
``close()``. Each call is submitted to that loop and awaited with a timeout.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine, Mapping
import concurrent.futures
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import timedelta
import json
import logging
import threading
from typing import Any

from mcp import ClientSession, types
from mcp.client.streamable_http import streamablehttp_client

from umlflow.engine.capabilities import ToolSpec
from umlflow.errors import ToolInvocationFailure

logger = logging.getLogger(__name__)

CLIENT_VERSION = "0.1.0"

SessionFactory = Callable[[], AbstractAsyncContextManager[Any]]
SessionRequest = Callable[[Any], Coroutine[Any, Any, Any]]


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _content_value(result: types.CallToolResult) -> Any:
    if result.structuredContent is not None:
        return result.structuredContent
    texts = [
        item.text for item in result.content if isinstance(item, types.TextContent)
    ]
    if not texts:
        return result.model_dump(mode="json", exclude_none=True)
    text = "\n".join(texts)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _stop_loop(loop: asyncio.AbstractEventLoop, thread: threading.Thread) -> None:
    async def _cancel_pending() -> None:
        current = asyncio.current_task()
        pending = [task for task in asyncio.all_tasks() if task is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    try:
        asyncio.run_coroutine_threadsafe(_cancel_pending(), loop).result(timeout=5)
    except TimeoutError:
        logger.warning("Timed out cancelling pending MCP tasks")
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    if not thread.is_alive():
        loop.close()


class MCPToolProvider:
    """Tool provider speaking MCP to a remote server.

    The session opens lazily on the first call and is reused until ``close()``.
    ``client_key`` identifies this client in the handshake. ``session_factory``
    replaces the streamable HTTP session with any async context manager that
    yields an object offering ``list_tools`` and ``call_tool``.
    """

    def __init__(
        self,
        url: str,
        *,
        client_key: str = "umlflow",
        timeout: float = 60.0,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.url = url
        self.client_key = client_key
        self.timeout = timeout
        self._session_factory = session_factory or self._open_session
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._session: Any = None
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._tools: list[ToolSpec] | None = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    @asynccontextmanager
    async def _open_session(self) -> AsyncIterator[ClientSession]:
        async with streamablehttp_client(
            self.url, timeout=timedelta(seconds=self.timeout)
        ) as (read_stream, write_stream, _):
            async with ClientSession(
                read_stream,
                write_stream,
                client_info=types.Implementation(
                    name=self.client_key, version=CLIENT_VERSION
                ),
            ) as session:
                result = await session.initialize()
                logger.info(
                    f"MCP session with {result.serverInfo.name} at {self.url} "
                    "established"
                )
                yield session

    async def _serve(self, ready: asyncio.Future[Any], stop: asyncio.Event) -> None:
        # The transport must be entered and exited by the same task.
        try:
            async with self._session_factory() as session:
                ready.set_result(session)
                await stop.wait()
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
            else:
                logger.warning(f"MCP session with {self.url} ended: {_describe(exc)}")

    async def _connect(self) -> tuple[Any, asyncio.Event, asyncio.Task[None]]:
        loop = asyncio.get_running_loop()
        ready: asyncio.Future[Any] = loop.create_future()
        stop = asyncio.Event()
        task = loop.create_task(self._serve(ready, stop))
        session = await ready
        return session, stop, task

    def _ensure_session(self) -> tuple[asyncio.AbstractEventLoop, Any]:
        with self._lock:
            if self._task is not None and self._task.done():
                logger.info(f"MCP session with {self.url} was lost; reconnecting")
                self._shutdown_locked()
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever,
                    name=f"mcp-{self.client_key}",
                    daemon=True,
                )
                thread.start()
                future = asyncio.run_coroutine_threadsafe(self._connect(), loop)
                try:
                    session, stop, task = future.result(timeout=self.timeout)
                except Exception:
                    future.cancel()
                    _stop_loop(loop, thread)
                    raise
                self._loop, self._thread = loop, thread
                self._session, self._stop, self._task = session, stop, task
            return self._loop, self._session

    def _shutdown_locked(self) -> None:
        loop, thread = self._loop, self._thread
        stop, task = self._stop, self._task
        self._loop = self._thread = self._session = self._stop = self._task = None
        if loop is None or thread is None:
            return

        async def _finish() -> None:
            if stop is not None:
                stop.set()
            if task is not None:
                await task

        try:
            asyncio.run_coroutine_threadsafe(_finish(), loop).result(
                timeout=self.timeout
            )
        except (TimeoutError, concurrent.futures.CancelledError):
            logger.warning(f"MCP session with {self.url} did not close cleanly")
        _stop_loop(loop, thread)

    def _call(self, label: str, request: SessionRequest) -> Any:
        try:
            loop, session = self._ensure_session()
        except Exception as exc:
            raise ToolInvocationFailure(
                label, f"cannot reach {self.url}: {_describe(exc)}"
            ) from exc
        future = asyncio.run_coroutine_threadsafe(request(session), loop)
        try:
            return future.result(timeout=self.timeout)
        except TimeoutError as exc:
            future.cancel()
            raise ToolInvocationFailure(
                label, f"no reply from {self.url} within {self.timeout}s"
            ) from exc
        except ToolInvocationFailure:
            raise
        except Exception as exc:
            raise ToolInvocationFailure(label, _describe(exc)) from exc

    def list_tools(self) -> list[ToolSpec]:
        if self._tools is None:
            result = self._call("tools/list", lambda session: session.list_tools())
            self._tools = [
                ToolSpec(
                    name=tool.name,
                    description=tool.description or "",
                    input_schema=dict(tool.inputSchema or {}),
                )
                for tool in result.tools
            ]
        return list(self._tools)

    def invoke(self, name: str, arguments: Mapping[str, Any]) -> Any:
        result = self._call(
            name, lambda session: session.call_tool(name, dict(arguments))
        )
        value = _content_value(result)
        if result.isError:
            raise ToolInvocationFailure(name, str(value))
        return value

    def close(self) -> None:
        """End the session and stop the private loop; safe to call repeatedly."""
        with self._lock:
            self._shutdown_locked()
            self._tools = None


__all__ = ["CLIENT_VERSION", "MCPToolProvider"]
