"""
Tool Registry — Declarative connection descriptors for MCP tool servers

Each descriptor says how to reach one tool server (a local process over
stdio, or a network endpoint over streamable HTTP). Descriptor fields may
contain ${env:NAME} markers that are resolved against the environment when
the session manager opens its sessions. ${env:NAME:-default} marks an
optional variable with a fallback value.
"""
from typing import Dict, Any, List, Optional, Mapping, Tuple
from dataclasses import dataclass, field, replace
from enum import Enum
import os
import re

from remediator.errors import ConfigurationError


ENV_MARKER = re.compile(r"\$\{env:([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


class TransportKind(str, Enum):
    """How a tool server is reached"""
    STDIO = "stdio"
    HTTP = "http"


_TRANSPORT_ALIASES = {
    "stdio": TransportKind.STDIO,
    "http": TransportKind.HTTP,
    "streamable_http": TransportKind.HTTP,
    "streamable-http": TransportKind.HTTP,
}


@dataclass
class ToolResult:
    """
    Result of a tool invocation.

    A protocol-level tool error is a ToolResult with success=False; it is
    never raised. Only lookup failures (unknown tool, dead session) raise.
    """
    success: bool
    output: str = ""
    error: Optional[str] = None
    structured: Optional[Dict[str, Any]] = None
    latency_ms: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCatalogEntry:
    """A capability discovered on a tool server"""
    name: str
    description: str
    input_schema: Dict[str, Any]
    server: str

    def to_schema(self) -> Dict[str, Any]:
        """Export as a JSON-serializable schema"""
        schema = self.input_schema or {}
        return {
            "name": self.name,
            "description": self.description,
            "server": self.server,
            "parameters": {
                "type": schema.get("type", "object"),
                "properties": schema.get("properties", {}),
                "required": list(schema.get("required", [])),
            },
        }


@dataclass(frozen=True)
class ToolDescriptor:
    """How to connect to one tool server"""
    name: str
    transport: TransportKind = TransportKind.STDIO
    command: Optional[str] = None
    args: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ToolDescriptor":
        """Build a descriptor from a parsed YAML/JSON mapping"""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Tool server '{name}': descriptor must be a mapping")

        raw_transport = data.get("transport") or ("http" if data.get("url") else "stdio")
        transport = _TRANSPORT_ALIASES.get(str(raw_transport).lower())
        if transport is None:
            raise ConfigurationError(
                f"Tool server '{name}': unsupported transport '{raw_transport}'"
            )

        descriptor = cls(
            name=name,
            transport=transport,
            command=data.get("command"),
            args=tuple(str(a) for a in data.get("args") or []),
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
            url=data.get("url"),
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
        )
        descriptor.validate()
        return descriptor

    def validate(self) -> None:
        if self.transport == TransportKind.STDIO and not self.command:
            raise ConfigurationError(f"Tool server '{self.name}': stdio transport requires 'command'")
        if self.transport == TransportKind.HTTP and not self.url:
            raise ConfigurationError(f"Tool server '{self.name}': http transport requires 'url'")

    def resolve(self, environ: Optional[Mapping[str, str]] = None) -> "ToolDescriptor":
        """
        Return a copy with every ${env:NAME} marker substituted.

        Raises:
            ConfigurationError: a required variable is not set
        """
        environ = os.environ if environ is None else environ

        def sub(value: Optional[str]) -> Optional[str]:
            if value is None:
                return None
            return substitute_env(value, environ, server=self.name)

        return replace(
            self,
            command=sub(self.command),
            args=tuple(sub(a) for a in self.args),
            env={k: sub(v) for k, v in self.env.items()},
            url=sub(self.url),
            headers={k: sub(v) for k, v in self.headers.items()},
        )


def substitute_env(value: str, environ: Mapping[str, str], server: str = "") -> str:
    """Replace ${env:NAME} / ${env:NAME:-default} markers in a single string"""

    def replacer(match):
        name, default = match.group(1), match.group(2)
        if name in environ:
            return environ[name]
        if default is not None:
            return default
        raise ConfigurationError(
            f"Tool server '{server}': environment variable '{name}' is not set"
        )

    return ENV_MARKER.sub(replacer, value)


class ToolRegistry:
    """
    Registry of tool server descriptors, keyed by server name.

    Registration order is preserved; the session manager opens servers in
    this order and resolves tool-name collisions by it.

    Usage:
        registry = ToolRegistry()
        registry.register(ToolDescriptor(name="fs", command="npx", args=(...)))
        resolved = registry.resolve_all()
    """

    def __init__(self, descriptors: Optional[Mapping[str, ToolDescriptor]] = None):
        self._descriptors: Dict[str, ToolDescriptor] = {}
        for descriptor in (descriptors or {}).values():
            self.register(descriptor)

    def register(self, descriptor: ToolDescriptor) -> None:
        """Register a descriptor"""
        if descriptor.name in self._descriptors:
            raise ConfigurationError(f"Tool server '{descriptor.name}' is already registered")
        descriptor.validate()
        self._descriptors[descriptor.name] = descriptor

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._descriptors.get(name)

    def list_names(self) -> List[str]:
        return list(self._descriptors.keys())

    def count(self) -> int:
        return len(self._descriptors)

    def resolve_all(self, environ: Optional[Mapping[str, str]] = None) -> Dict[str, ToolDescriptor]:
        """
        Resolve environment markers in every descriptor.

        All descriptors are resolved before any is used, so one unresolved
        variable fails the whole set.
        """
        return {name: d.resolve(environ) for name, d in self._descriptors.items()}
