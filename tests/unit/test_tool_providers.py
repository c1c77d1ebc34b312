from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import asynccontextmanager
from datetime import timedelta
from types import SimpleNamespace
from typing import Any

from mcp import types
from mcp.shared.exceptions import McpError
import pytest

from umlflow.engine import ToolProvider
from umlflow.errors import ToolInvocationFailure
from umlflow.tools import MCPToolProvider, StaticToolProvider
from umlflow.tools import mcp as mcp_module
def test_static_provider_registers_and_invokes_callables() -> None:
    def create_module(moduleName: str, **extra: Any) -> dict[str, Any]:
        """Create a TopLogic module."""
        return {"created": moduleName, **extra}

    provider = StaticToolProvider().register("create-module", create_module)

    assert isinstance(provider, ToolProvider)
    assert [spec.name for spec in provider.list_tools()] == ["create-module"]
    assert provider.list_tools()[0].description == "Create a TopLogic module."
    assert provider.invoke("create-module", {"moduleName": "tracker.core"}) == {
        "created": "tracker.core"
    }
    assert provider.calls == [("create-module", {"moduleName": "tracker.core"})]


def test_static_provider_rejects_duplicates_and_unknown_tools() -> None:
    provider = StaticToolProvider().register("create-class", lambda **kw: kw)

    with pytest.raises(ValueError):
        provider.register("create-class", lambda **kw: kw)
    with pytest.raises(ToolInvocationFailure, match="no such tool"):
        provider.invoke("delete-everything", {})


def test_static_provider_wraps_tool_errors() -> None:
    def reject(**arguments: Any) -> None:
        raise ValueError("module already exists")

    provider = StaticToolProvider().register("create-module", reject)

    with pytest.raises(ToolInvocationFailure) as excinfo:
        provider.invoke("create-module", {"moduleName": "tracker.core"})

    assert excinfo.value.tool_name == "create-module"
    assert "module already exists" in str(excinfo.value)



MCP_URL = "http://localhost:8080/tl-ai-demo/mcp"


def _text(text: str) -> types.CallToolResult:
    return types.CallToolResult(content=[types.TextContent(type="text", text=text)])


class _FakeSession:
    """Answers tools/list and tools/call the way the SDK session does."""

    def __init__(
        self, results: dict[str, types.CallToolResult], *, delay: float = 0.0
    ) -> None:
        self.results = results
        self.delay = delay
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.listings = 0

    async def list_tools(self) -> types.ListToolsResult:
        self.listings += 1
        return types.ListToolsResult(
            tools=[
                types.Tool(
                    name="create-module",
                    description="Creates a module",
                    inputSchema={"type": "object"},
                ),
                types.Tool(name="create-class", inputSchema={}),
            ]
        )

    async def call_tool(
        self, name: str, arguments: dict[str, Any]
    ) -> types.CallToolResult:
        self.calls.append((name, arguments))
        if self.delay:
            await asyncio.sleep(self.delay)
        if name not in self.results:
            raise McpError(
                types.ErrorData(code=-32602, message=f"Unknown tool {name}")
            )
        return self.results[name]


class _FakeServer:
    def __init__(self, session: _FakeSession, *, failures: int = 0) -> None:
        self.session = session
        self.failures = failures
        self.opened = 0
        self.closed = 0

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[_FakeSession]:
        if self.failures:
            self.failures -= 1
            raise ConnectionError("connection refused")
        self.opened += 1
        try:
            yield self.session
        finally:
            self.closed += 1


ProviderFactory = Callable[..., MCPToolProvider]


@pytest.fixture
def mcp_provider() -> Iterator[ProviderFactory]:
    providers: list[MCPToolProvider] = []

    def factory(server: _FakeServer, *, timeout: float = 5.0) -> MCPToolProvider:
        provider = MCPToolProvider(
            MCP_URL,
            client_key="UMLSpecificationAgent",
            timeout=timeout,
            session_factory=server.connect,
        )
        providers.append(provider)
        return provider

    yield factory
    for provider in providers:
        provider.close()


def test_mcp_list_tools_maps_specs_and_is_cached(
    mcp_provider: ProviderFactory,
) -> None:
    server = _FakeServer(_FakeSession({}))
    provider = mcp_provider(server)

    tools = provider.list_tools()
    again = provider.list_tools()

    assert isinstance(provider, ToolProvider)
    assert [tool.name for tool in tools] == ["create-module", "create-class"]
    assert tools[0].description == "Creates a module"
    assert tools[0].input_schema == {"type": "object"}
    assert tools[1].description == ""
    assert again == tools
    assert server.session.listings == 1


def test_mcp_session_opens_lazily_and_is_reused(
    mcp_provider: ProviderFactory,
) -> None:
    session = _FakeSession(
        {
            "create-module": _text('{"moduleName": "tracker.core"}'),
            "create-class": _text("created"),
        }
    )
    server = _FakeServer(session)
    provider = mcp_provider(server)

    assert not provider.connected
    module = provider.invoke("create-module", {"moduleName": "tracker.core"})
    created = provider.invoke("create-class", {"className": "Task"})

    assert provider.connected
    assert module == {"moduleName": "tracker.core"}
    assert created == "created"
    assert server.opened == 1
    assert session.calls == [
        ("create-module", {"moduleName": "tracker.core"}),
        ("create-class", {"className": "Task"}),
    ]


def test_mcp_structured_content_wins_over_text(
    mcp_provider: ProviderFactory,
) -> None:
    result = types.CallToolResult(
        content=[types.TextContent(type="text", text="created")],
        structuredContent={"className": "Task"},
    )
    provider = mcp_provider(_FakeServer(_FakeSession({"create-class": result})))

    assert provider.invoke("create-class", {}) == {"className": "Task"}


def test_mcp_error_results_raise_tool_failure(mcp_provider: ProviderFactory) -> None:
    result = types.CallToolResult(
        content=[types.TextContent(type="text", text="Module 'x' does not exist")],
        isError=True,
    )
    provider = mcp_provider(_FakeServer(_FakeSession({"create-class": result})))

    with pytest.raises(ToolInvocationFailure, match="does not exist") as excinfo:
        provider.invoke("create-class", {"moduleName": "x"})

    assert excinfo.value.tool_name == "create-class"


def test_mcp_protocol_errors_raise_tool_failure(
    mcp_provider: ProviderFactory,
) -> None:
    provider = mcp_provider(_FakeServer(_FakeSession({})))

    with pytest.raises(ToolInvocationFailure, match="Unknown tool create-widget"):
        provider.invoke("create-widget", {})

    assert provider.connected


def test_mcp_failed_connect_raises_and_next_call_reconnects(
    mcp_provider: ProviderFactory,
) -> None:
    server = _FakeServer(_FakeSession({}), failures=1)
    provider = mcp_provider(server)

    with pytest.raises(ToolInvocationFailure) as excinfo:
        provider.list_tools()

    assert excinfo.value.tool_name == "tools/list"
    assert "connection refused" in str(excinfo.value)
    assert not provider.connected

    assert [tool.name for tool in provider.list_tools()] == [
        "create-module",
        "create-class",
    ]
    assert server.opened == 1


def test_mcp_close_ends_session_and_later_calls_reopen(
    mcp_provider: ProviderFactory,
) -> None:
    server = _FakeServer(_FakeSession({"create-module": _text("ok")}))
    provider = mcp_provider(server)
    provider.invoke("create-module", {})

    provider.close()
    provider.close()

    assert server.closed == 1
    assert not provider.connected
    assert provider.invoke("create-module", {}) == "ok"
    assert server.opened == 2


def test_mcp_slow_tool_times_out(mcp_provider: ProviderFactory) -> None:
    session = _FakeSession({"create-module": _text("ok")}, delay=5.0)
    provider = mcp_provider(_FakeServer(session), timeout=0.2)

    with pytest.raises(ToolInvocationFailure, match="no reply"):
        provider.invoke("create-module", {})


def test_mcp_default_session_identifies_the_client(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seen: dict[str, Any] = {}

    @asynccontextmanager
    async def transport(
        url: str, *, timeout: timedelta
    ) -> AsyncIterator[tuple[Any, Any, Any]]:
        seen["url"] = url
        seen["timeout"] = timeout
        yield "read", "write", lambda: "session-42"

    class ClientSession:
        def __init__(
            self, read_stream: Any, write_stream: Any, *, client_info: Any
        ) -> None:
            seen["streams"] = (read_stream, write_stream)
            seen["client_info"] = client_info

        async def __aenter__(self) -> ClientSession:
            return self

        async def __aexit__(self, *exc_info: Any) -> None:
            seen["exited"] = True

        async def initialize(self) -> Any:
            return SimpleNamespace(serverInfo=SimpleNamespace(name="tl-ai-demo"))

        async def call_tool(
            self, name: str, arguments: dict[str, Any]
        ) -> types.CallToolResult:
            return _text("ok")

    monkeypatch.setattr(mcp_module, "streamablehttp_client", transport)
    monkeypatch.setattr(mcp_module, "ClientSession", ClientSession)
    provider = MCPToolProvider(MCP_URL, client_key="UMLSpecificationAgent", timeout=5)
    try:
        assert provider.invoke("create-module", {}) == "ok"
    finally:
        provider.close()

    assert seen["url"] == MCP_URL
    assert seen["timeout"] == timedelta(seconds=5)
    assert seen["streams"] == ("read", "write")
    assert seen["client_info"].name == "UMLSpecificationAgent"
    assert seen["exited"] is True
