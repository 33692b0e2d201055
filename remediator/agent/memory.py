"""
Memory Log — Conversation history backed by a GitHub issue thread

The issue is the anchor (always the first, user-authored message); its
comments are the follow-ups, in chronological order. The thread is the only
persistence: nothing is stored locally between runs, and nothing is ever
deleted or reordered.

Author classification is heuristic and lossy. A comment counts as agent
output when GitHub marks its author as a bot or its body starts with one of
AGENT_SIGNATURES. A human quoting the signature at the start of a comment is
misread as the agent, and anything the agent posts as `user` through a bot
token reads back as `agent`.
"""
from typing import Dict, Any, List, Optional, Union
from dataclasses import dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class MessageRole(str, Enum):
    USER = "user"
    AGENT = "agent"


# Authors GitHub flags as automated identities (`user.type`)
AUTOMATED_AUTHOR_TYPES = frozenset({"Bot"})

# Leading tokens that mark a comment body as agent output
AGENT_SIGNATURES = ("[Remediator]", "🤖")

# Prepended to every agent comment so the next run reclassifies it as agent
AGENT_COMMENT_PREFIX = "🤖 **Remediator**\n\n"


@dataclass(frozen=True)
class Message:
    role: MessageRole
    content: str


def classify_author(
    author_type: Optional[str],
    body: str,
    signatures=AGENT_SIGNATURES,
) -> MessageRole:
    """
    Decide whether a thread entry was written by the agent or a user.

    Args:
        author_type: GitHub `user.type` of the comment author ("User", "Bot", ...)
        body: Comment text
        signatures: Body prefixes that identify agent output

    Returns:
        MessageRole.AGENT or MessageRole.USER
    """
    if author_type in AUTOMATED_AUTHOR_TYPES:
        return MessageRole.AGENT
    text = (body or "").lstrip()
    if any(text.startswith(sig) for sig in signatures):
        return MessageRole.AGENT
    return MessageRole.USER


class MemoryLog:
    """
    Append-only message history mirrored to an issue thread.

    Usage:
        memory = MemoryLog(github, issue_number=42)
        history = await memory.read()          # loads lazily
        await memory.append("agent", "Plan created")
    """

    def __init__(self, github, issue_number: int, comment_limit: int = 100):
        self.github = github
        self.issue_number = issue_number
        self.comment_limit = comment_limit
        self._messages: List[Message] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Fetch the issue and its comments. Does nothing once loaded."""
        if self._loaded:
            return

        logger.info(f"💭 Loading message history from issue #{self.issue_number}")
        issue = await self.github.fetch_issue(self.issue_number)
        comments = await self.github.fetch_issue_comments(self.issue_number, self.comment_limit)

        messages = [
            Message(
                role=MessageRole.USER,
                content=f"Issue: {issue.get('title', '')}\n\n{issue.get('body') or ''}",
            )
        ]
        for comment in comments:
            messages.append(self._from_comment(comment))

        self._messages = messages
        self._loaded = True
        logger.info(f"✅ Loaded {len(self._messages)} message(s) from issue")

    def _from_comment(self, comment: Dict[str, Any]) -> Message:
        body = comment.get("body") or ""
        author_type = (comment.get("user") or {}).get("type")
        role = classify_author(author_type, body)
        if role == MessageRole.AGENT and body.startswith(AGENT_COMMENT_PREFIX):
            body = body[len(AGENT_COMMENT_PREFIX):]
        return Message(role=role, content=body)

    async def read(self) -> List[Message]:
        """Full history, oldest first"""
        await self.load()
        return list(self._messages)

    async def append(self, role: Union[MessageRole, str], content: str) -> None:
        """
        Post a message to the thread, then record it.

        The local sequence only grows after GitHub has accepted the comment,
        so memory never runs ahead of the visible thread. A failed post
        raises and leaves the history untouched.
        """
        role = MessageRole(role)
        await self.load()

        body = f"{AGENT_COMMENT_PREFIX}{content}" if role == MessageRole.AGENT else content
        await self.github.post_comment(self.issue_number, body)
        self._messages.append(Message(role=role, content=content))

    async def add_agent_message(self, content: str) -> None:
        await self.append(MessageRole.AGENT, content)

    async def add_user_message(self, content: str) -> None:
        await self.append(MessageRole.USER, content)

    async def transcript(self) -> str:
        """Render the history for a prompt"""
        lines = []
        for msg in await self.read():
            speaker = "User" if msg.role == MessageRole.USER else "Assistant"
            lines.append(f"{speaker}: {msg.content}")
        return "\n\n".join(lines)

    def summary(self, preview_chars: int = 100) -> str:
        """Short one-line-per-message preview of what is loaded"""
        if not self._messages:
            return "No conversation history"
        lines = []
        for msg in self._messages:
            speaker = "User" if msg.role == MessageRole.USER else "Assistant"
            lines.append(f"{speaker}: {msg.content[:preview_chars]}...")
        return "\n".join(lines)
