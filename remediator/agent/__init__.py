"""
Agent package — Core remediation agent

Components:
- ToolRegistry / ToolSessionManager: MCP tool server descriptors and sessions
- MemoryLog: Issue-thread backed conversation history
- Planner: LLM-powered plan generation
- Executor: Step-by-step plan execution
- PatchSynthesizer: File patches from step outcomes
"""
from remediator.agent.tool_registry import ToolRegistry, ToolDescriptor, ToolCatalogEntry, ToolResult
from remediator.agent.tool_sessions import ToolSessionManager, SessionFailurePolicy
from remediator.agent.memory import MemoryLog, Message, MessageRole, classify_author
from remediator.agent.planner import Planner, ExecutionPlan, PlanStep
from remediator.agent.executor import Executor, ExecutionResult, StepResult, StepStatus, render_summary
from remediator.agent.patches import PatchSynthesizer
from remediator.agent.safety import SafetyVerdict, validate_patches

__all__ = [
    "ToolRegistry", "ToolDescriptor", "ToolCatalogEntry", "ToolResult",
    "ToolSessionManager", "SessionFailurePolicy",
    "MemoryLog", "Message", "MessageRole", "classify_author",
    "Planner", "ExecutionPlan", "PlanStep",
    "Executor", "ExecutionResult", "StepResult", "StepStatus", "render_summary",
    "PatchSynthesizer",
    "SafetyVerdict", "validate_patches",
]
