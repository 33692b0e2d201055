"""
Tool Session Manager — MCP sessions, capability discovery and invocation

Opens one MCP session per tool server descriptor, discovers each server's
tools, and routes invocations by tool name to the server that advertises it.
The manager owns every session it opens and closes all of them on teardown.
"""
from typing import Dict, Any, List, Optional, Mapping, Callable, Awaitable
from contextlib import AsyncExitStack
from dataclasses import replace
from datetime import timedelta
from enum import Enum
import logging
import os
import time

import anyio
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError

from remediator.agent.tool_registry import (
    ToolCatalogEntry,
    ToolDescriptor,
    ToolRegistry,
    ToolResult,
    TransportKind,
)
from remediator.errors import SessionError, SessionUnavailable, ToolNotFound

logger = logging.getLogger(__name__)

Connector = Callable[[ToolDescriptor, AsyncExitStack], Awaitable[Any]]

# A session whose transport dies mid-call is dropped; the server's tools then
# raise SessionUnavailable instead of retrying a dead pipe.
_TRANSPORT_ERRORS = (anyio.ClosedResourceError, anyio.BrokenResourceError, anyio.EndOfStream)


class SessionFailurePolicy(str, Enum):
    """What open() does when a single tool server fails to connect"""
    CONTINUE = "continue"  # log it, keep the servers that did connect
    ABORT = "abort"        # close everything opened so far and raise


async def connect_session(descriptor: ToolDescriptor, stack: AsyncExitStack) -> ClientSession:
    """Open the transport for a resolved descriptor and initialize an MCP session"""
    if descriptor.transport == TransportKind.HTTP:
        read, write, _ = await stack.enter_async_context(
            streamablehttp_client(descriptor.url, headers=dict(descriptor.headers) or None)
        )
    else:
        params = StdioServerParameters(
            command=descriptor.command,
            args=list(descriptor.args),
            env={**os.environ, **descriptor.env},
        )
        read, write = await stack.enter_async_context(stdio_client(params))

    session = await stack.enter_async_context(ClientSession(read, write))
    await session.initialize()
    return session


class ToolSessionManager:
    """
    Owns MCP sessions for a single agent run.

    Usage:
        async with ToolSessionManager() as tools:
            await tools.open(config.tool_descriptors)
            catalog = tools.list_all()
            result = await tools.invoke("read_file", {"path": "README.md"})
    """

    def __init__(
        self,
        policy: SessionFailurePolicy = SessionFailurePolicy.CONTINUE,
        call_timeout: Optional[float] = None,
        connector: Connector = connect_session,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.policy = SessionFailurePolicy(policy)
        self.call_timeout = call_timeout
        self._connector = connector
        self._environ = environ
        self._stacks: Dict[str, AsyncExitStack] = {}
        self._sessions: Dict[str, Any] = {}
        self._catalogs: Dict[str, List[ToolCatalogEntry]] = {}
        self._failures: Dict[str, str] = {}

    async def __aenter__(self) -> "ToolSessionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def failures(self) -> Dict[str, str]:
        """Servers that could not be opened, with the reason"""
        return dict(self._failures)

    async def open(self, descriptors: Mapping[str, ToolDescriptor]) -> None:
        """
        Connect to every tool server and discover its tools.

        Environment markers in all descriptors are resolved first, so an
        unresolved variable raises ConfigurationError before any session is
        established. Servers are then opened one at a time, in order.

        Raises:
            ConfigurationError: a descriptor references an unset variable
            SessionError: a server failed and the policy is ABORT
        """
        registry = ToolRegistry()
        for name, descriptor in descriptors.items():
            if descriptor.name != name:
                descriptor = replace(descriptor, name=name)
            registry.register(descriptor)

        resolved = registry.resolve_all(self._environ)

        if self._stacks:
            logger.info(f"🔧 Reopening tool sessions; closing {len(self._stacks)} existing session(s)")
            await self.close()
        self._failures.clear()

        for name, descriptor in resolved.items():
            logger.info(f"🔧 Connecting to tool server: {name} ({descriptor.transport.value})")
            stack = AsyncExitStack()
            try:
                session = await self._connector(descriptor, stack)
                listing = await session.list_tools()
            except Exception as e:
                await self._close_stack(name, stack)
                if self.policy == SessionFailurePolicy.ABORT:
                    logger.error(f"❌ Tool server {name} failed: {e}. Aborting tool initialization.")
                    await self.close()
                    raise SessionError(name, str(e)) from e
                logger.warning(f"⚠️ Tool server {name} failed: {e}. Continuing without it.")
                self._failures[name] = str(e)
                continue

            self._stacks[name] = stack
            self._sessions[name] = session
            self._catalogs[name] = [
                ToolCatalogEntry(
                    name=tool.name,
                    description=tool.description or "",
                    input_schema=dict(tool.inputSchema or {}),
                    server=name,
                )
                for tool in listing.tools
            ]
            logger.info(f"✅ Discovered {len(self._catalogs[name])} tool(s) from {name}")

    def list_all(self) -> List[ToolCatalogEntry]:
        """Every discovered tool, in server registration order"""
        entries: List[ToolCatalogEntry] = []
        for catalog in self._catalogs.values():
            entries.extend(catalog)
        return entries

    def list_for(self, server: str) -> List[ToolCatalogEntry]:
        return list(self._catalogs.get(server, []))

    def find(self, tool_name: str) -> Optional[ToolCatalogEntry]:
        """
        Look up a tool by name.

        When several servers advertise the same name, the server registered
        first wins.
        """
        for catalog in self._catalogs.values():
            for entry in catalog:
                if entry.name == tool_name:
                    return entry
        return None

    async def invoke(self, tool_name: str, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Call a tool on the server that advertises it.

        Protocol-level errors come back as ToolResult(success=False).

        Raises:
            ToolNotFound: no server advertises the name
            SessionUnavailable: the owning server has no live session
        """
        entry = self.find(tool_name)
        if entry is None:
            raise ToolNotFound(tool_name)

        session = self._sessions.get(entry.server)
        if session is None:
            raise SessionUnavailable(tool_name, entry.server)

        logger.info(f"🔧 Calling tool {tool_name} on server {entry.server}")
        timeout = timedelta(seconds=self.call_timeout) if self.call_timeout else None
        start_time = time.time()
        try:
            result = await session.call_tool(tool_name, arguments=args or {}, read_timeout_seconds=timeout)
        except McpError as e:
            return ToolResult(
                success=False,
                error=f"{type(e).__name__}: {e}",
                latency_ms=int((time.time() - start_time) * 1000),
                metadata={"server": entry.server},
            )
        except _TRANSPORT_ERRORS as e:
            logger.error(f"❌ Session for {entry.server} is gone: {e!r}")
            self._sessions.pop(entry.server, None)
            raise SessionUnavailable(tool_name, entry.server) from e

        text = _content_to_text(getattr(result, "content", None) or [])
        is_error = bool(getattr(result, "isError", False))
        return ToolResult(
            success=not is_error,
            output="" if is_error else text,
            error=text if is_error else None,
            structured=getattr(result, "structuredContent", None),
            latency_ms=int((time.time() - start_time) * 1000),
            metadata={"server": entry.server},
        )

    async def close(self) -> None:
        """
        Tear down every session.

        A failing teardown is logged and does not stop the others.
        """
        failures: List[str] = []
        for name in list(self._stacks.keys()):
            stack = self._stacks.pop(name)
            if not await self._close_stack(name, stack):
                failures.append(name)

        self._sessions.clear()
        self._catalogs.clear()
        if failures:
            logger.warning(f"⚠️ {len(failures)} tool session(s) failed to close cleanly: {', '.join(failures)}")

    async def _close_stack(self, name: str, stack: AsyncExitStack) -> bool:
        try:
            await stack.aclose()
            logger.debug(f"Closed connection to {name}")
            return True
        except Exception as e:
            logger.error(f"❌ Error closing connection to {name}: {e}")
            return False


def _content_to_text(content: List[Any]) -> str:
    """Flatten MCP content parts into text"""
    parts = []
    for item in content:
        if getattr(item, "text", None) is not None:
            parts.append(item.text)
        elif getattr(item, "data", None) is not None:
            parts.append(f"[{getattr(item, 'mimeType', 'binary')}: {len(item.data)} bytes]")
        elif getattr(item, "resource", None) is not None:
            resource = item.resource
            parts.append(getattr(resource, "text", None) or f"[resource {getattr(resource, 'uri', '')}]")
        else:
            parts.append(str(item))
    return "\n".join(parts)
