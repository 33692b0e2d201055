"""Shared fakes for the model client, the GitHub service and MCP sessions.

The fakes record what they were asked to do so tests can assert on the
exact calls without any network access.
"""

import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from remediator.config import AgentConfiguration, KnowledgeBase


# =============================================================================
# Model
# =============================================================================


class FakeModel:
    """Scripted stand-in for ModelClient.complete / generate.

    Each entry in `replies` is either a string (returned as the completion
    text) or an Exception instance (raised). Once the script runs out the
    last entry repeats.
    """

    def __init__(self, replies=None, proposal=None):
        self.replies = list(replies or ["{}"])
        self.proposal = proposal
        self.calls: List[Dict[str, str]] = []

    def _next(self):
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]

    async def complete(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        self.calls.append({"system": system_prompt, "user": user_prompt})
        reply = self._next()
        if isinstance(reply, Exception):
            raise reply
        return {"text": reply, "model": "fake", "latency_ms": 1, "tokens_used": 10}

    async def generate(self, system_prompt: str, user_prompt: str, model=None):
        self.calls.append({"system": system_prompt, "user": user_prompt})
        if isinstance(self.proposal, Exception):
            raise self.proposal
        return self.proposal


def plan_json(*actions, tool=None) -> str:
    return json.dumps({
        "objective": "restated",
        "reasoning": "approach",
        "steps": [
            {"step": i, "action": a, "reasoning": f"why {i}", "tool": tool}
            for i, a in enumerate(actions, 1)
        ],
    })


# =============================================================================
# GitHub
# =============================================================================


class FakeGitHub:
    """In-memory issue thread plus a record of repository writes."""

    def __init__(self, title="Disk full", body="Runner disk is at 100%", comments=None):
        self.issue = {"number": 7, "title": title, "body": body, "user": {"type": "User"}}
        self.comments: List[Dict[str, Any]] = list(comments or [])
        self.fail_post = False
        self.fetch_calls = 0
        self.branches: Dict[str, str] = {}
        self.files: Dict[str, str] = {}
        self.writes: List[tuple] = []
        self.pull_requests: List[Dict[str, Any]] = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def fetch_issue(self, number):
        self.fetch_calls += 1
        return self.issue

    async def fetch_issue_comments(self, number, limit=100):
        return self.comments[-limit:]

    async def post_comment(self, number, body):
        if self.fail_post:
            raise RuntimeError("GitHub unavailable")
        comment = {"body": body, "user": {"type": "Bot"}}
        self.comments.append(comment)
        return comment

    async def get_branch_sha(self, branch):
        return "base-sha"

    async def create_branch(self, branch, sha):
        self.branches[branch] = sha

    async def get_file_sha(self, path, ref):
        return f"sha-{path}" if path in self.files else None

    async def put_file(self, path, content, message, branch, sha=None):
        self.writes.append(("put", path, message, sha))
        self.files[path] = content

    async def delete_file(self, path, message, branch, sha):
        self.writes.append(("delete", path, message, sha))
        self.files.pop(path, None)

    async def create_pull_request(self, title, head, base, body):
        pr = {"number": len(self.pull_requests) + 100, "html_url": f"https://github.test/pr/{head}",
              "title": title, "head": head, "base": base, "body": body}
        self.pull_requests.append(pr)
        return pr


# =============================================================================
# MCP sessions
# =============================================================================


def tool(name, description="", schema=None):
    return SimpleNamespace(
        name=name,
        description=description,
        inputSchema=schema or {"type": "object", "properties": {}, "required": []},
    )


class FakeSession:
    """Minimal ClientSession: list_tools + call_tool."""

    def __init__(self, server, tools, result=None, error=None):
        self.server = server
        self.tools = tools
        self.result = result
        self.error = error
        self.calls: List[tuple] = []

    async def list_tools(self):
        return SimpleNamespace(tools=self.tools)

    async def call_tool(self, name, arguments=None, read_timeout_seconds=None):
        self.calls.append((name, arguments, read_timeout_seconds))
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return SimpleNamespace(
            content=[SimpleNamespace(text=f"{self.server}:{name}")],
            isError=False,
            structuredContent=None,
        )


class FakeConnector:
    """Connector that hands out FakeSessions and records open/close order.

    `sessions` maps server name to a FakeSession or an Exception to raise
    while connecting. `close_errors` names servers whose teardown fails.
    """

    def __init__(self, sessions, close_errors=()):
        self.sessions = sessions
        self.close_errors = set(close_errors)
        self.connected: List[str] = []
        self.closed: List[str] = []

    async def __call__(self, descriptor, stack):
        self.connected.append(descriptor.name)
        outcome = self.sessions[descriptor.name]

        async def on_close():
            self.closed.append(descriptor.name)
            if descriptor.name in self.close_errors:
                raise RuntimeError(f"{descriptor.name} teardown failed")

        stack.push_async_callback(on_close)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def agent_config() -> AgentConfiguration:
    return AgentConfiguration(
        system_prompt="You are a careful SRE.",
        knowledge_bases=[KnowledgeBase(name="runbook.md", content="Clean /tmp before /var/log.")],
    )


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()
