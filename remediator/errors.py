"""
Exception types shared across the remediation agent

Configuration errors are fatal. Session and invocation errors belong to the
tool layer. Model and GitHub errors wrap the underlying client failures.
"""


class RemediatorError(Exception):
    """Base class for all agent errors"""


class ConfigurationError(RemediatorError):
    """Missing or unresolvable configuration (always fatal)"""


class SessionError(RemediatorError):
    """A tool server could not be reached or initialized"""

    def __init__(self, server: str, message: str):
        super().__init__(f"Tool server '{server}': {message}")
        self.server = server


class ToolNotFound(RemediatorError):
    """No connected tool server advertises the requested tool"""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool not found: {tool_name}")
        self.tool_name = tool_name


class SessionUnavailable(RemediatorError):
    """The server owning a tool has no live session"""

    def __init__(self, tool_name: str, server: str):
        super().__init__(f"Session for server '{server}' is not available (tool: {tool_name})")
        self.tool_name = tool_name
        self.server = server


class ModelError(RemediatorError):
    """Model completion call failed"""


class GitHubError(RemediatorError):
    """GitHub REST call returned an error status"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
