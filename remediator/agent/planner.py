"""
Planner — LLM-powered execution plan generator

Takes an objective + system prompt + knowledge base + tool catalog + issue
history → structured JSON execution plan.

create_plan never raises: if the model call fails or its answer cannot be
parsed, the plan degrades to a single "Manual intervention required" step
that carries the failure as its reasoning.
"""
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
import logging

from remediator.agent.parsing import extract_json
from remediator.agent.tool_registry import ToolCatalogEntry
from remediator.config import AgentConfiguration

logger = logging.getLogger(__name__)

MANUAL_INTERVENTION = "Manual intervention required"

_NO_TOOL = {"", "none", "null", "n/a"}


@dataclass(frozen=True)
class PlanStep:
    """A single step in an execution plan"""
    index: int
    action: str
    reasoning: str = ""
    tool: Optional[str] = None
    completed: bool = False


@dataclass
class ExecutionPlan:
    """Complete execution plan for an objective"""
    objective: str
    reasoning: str
    steps: List[PlanStep] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        return bool(self.metadata.get("fallback"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objective": self.objective,
            "reasoning": self.reasoning,
            "steps": [
                {
                    "step": s.index,
                    "action": s.action,
                    "reasoning": s.reasoning,
                    "tool": s.tool,
                    "completed": s.completed,
                }
                for s in self.steps
            ],
            "metadata": self.metadata,
        }

    def render(self) -> str:
        """Markdown summary posted to the issue thread"""
        steps = "\n".join(f"{s.index}. {s.action}" for s in self.steps)
        return (
            f"📋 **Execution Plan Created**\n\n"
            f"**Objective:** {self.objective}\n\n"
            f"**Reasoning:** {self.reasoning}\n\n"
            f"**Steps:**\n{steps}"
        )


PLANNING_CONTEXT = """AVAILABLE TOOLS:
{tools}

KNOWLEDGE BASE:
{knowledge}

CONVERSATION HISTORY:
{history}
"""

PLANNING_REQUEST = """Objective: {objective}

Create a detailed execution plan to address this objective. Return a JSON object with:
{{
  "objective": "restated objective",
  "reasoning": "high-level reasoning about approach",
  "steps": [
    {{
      "step": 1,
      "action": "description of action",
      "reasoning": "why this step",
      "tool": "tool name if applicable"
    }}
  ]
}}

Consider:
1. What diagnostic information is needed?
2. What tools or commands should be used?
3. What files need to be created/modified?
4. What are the potential risks?
5. How to ensure the fix is safe and reversible?

Use at most {max_steps} steps. Return ONLY the JSON, no markdown formatting.
"""


class Planner:
    """
    LLM-powered plan generator.

    Usage:
        planner = Planner(model, config, tools=tool_manager, memory=memory_log)
        plan = await planner.create_plan("Free up disk space on the runners")
    """

    def __init__(
        self,
        model,
        config: AgentConfiguration,
        tools=None,
        memory=None,
        max_steps: int = 10,
    ):
        self.model = model
        self.config = config
        self.tools = tools
        self.memory = memory
        self.max_steps = max_steps

    async def create_plan(self, objective: str) -> ExecutionPlan:
        """
        Generate an execution plan for the objective.

        Args:
            objective: Natural-language objective (issue text or prompt file)

        Returns:
            ExecutionPlan with at least one step
        """
        logger.info(f"📋 Planning for: {objective[:80]}...")

        system_prompt = f"{self.config.system_prompt}\n\n{await self.build_context()}"
        user_prompt = PLANNING_REQUEST.format(objective=objective, max_steps=self.max_steps)

        try:
            result = await self.model.complete(system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"❌ Planning call failed: {e}. Falling back to manual-intervention plan.")
            plan = self._create_fallback_plan(objective, f"Model call failed: {e}")
        else:
            try:
                plan = self._parse_plan(result["text"], objective)
                plan.metadata["planning_tokens"] = result.get("tokens_used", 0)
                plan.metadata["planning_latency_ms"] = result.get("latency_ms", 0)
            except ValueError as e:
                logger.warning(f"⚠️ Failed to parse plan: {e}")
                plan = self._create_fallback_plan(objective, f"Could not parse automated plan: {e}")

        logger.info(f"✅ Plan: {len(plan.steps)} steps | {plan.reasoning[:120]}")
        await self._record_plan(plan)
        return plan

    async def build_context(self) -> str:
        catalog: List[ToolCatalogEntry] = self.tools.list_all() if self.tools else []
        tools = "\n".join(
            f"- {t.name}: {t.description or 'No description'}" for t in catalog
        ) or "(no tools available)"

        knowledge = "\n\n".join(
            f"### {kb.name}\n{kb.content}" for kb in self.config.knowledge_bases
        ) or "(none)"

        history = "(none)"
        if self.memory is not None:
            try:
                history = await self.memory.transcript() or "(none)"
            except Exception as e:
                logger.warning(f"⚠️ Could not load conversation history: {e}")

        return PLANNING_CONTEXT.format(tools=tools, knowledge=knowledge, history=history)

    def _parse_plan(self, text: str, objective: str) -> ExecutionPlan:
        """
        Turn the model's JSON into a plan.

        Steps are renumbered 1..N by position, whatever numbers the model
        gave them, and trimmed to max_steps.

        Raises:
            ValueError: no JSON object, or no usable steps
        """
        data = extract_json(text, "{")

        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ValueError("plan has no steps")

        steps: List[PlanStep] = []
        for position, raw in enumerate(raw_steps[: max(self.max_steps, 0)], 1):
            if not isinstance(raw, dict):
                raise ValueError(f"step {position} is not an object")
            action = str(raw.get("action") or "").strip()
            if not action:
                raise ValueError(f"step {position} has no action")
            tool = raw.get("tool")
            tool = str(tool).strip() if tool is not None else ""
            steps.append(
                PlanStep(
                    index=position,
                    action=action,
                    reasoning=str(raw.get("reasoning") or ""),
                    tool=None if tool.lower() in _NO_TOOL else tool,
                )
            )

        if not steps:
            raise ValueError(f"no steps left after capping to {self.max_steps}")
        if len(raw_steps) > len(steps):
            logger.warning(f"⚠️ Plan capped to {len(steps)} steps (model proposed {len(raw_steps)})")

        return ExecutionPlan(
            objective=str(data.get("objective") or objective),
            reasoning=str(data.get("reasoning") or ""),
            steps=steps,
        )

    def _create_fallback_plan(self, objective: str, reason: str) -> ExecutionPlan:
        """Single-step plan used when no automated plan is available"""
        return ExecutionPlan(
            objective=objective,
            reasoning="Error producing plan from LLM response",
            steps=[PlanStep(index=1, action=MANUAL_INTERVENTION, reasoning=reason)],
            metadata={"fallback": True},
        )

    async def _record_plan(self, plan: ExecutionPlan) -> None:
        if self.memory is None:
            return
        try:
            await self.memory.add_agent_message(plan.render())
        except Exception as e:
            logger.warning(f"⚠️ Failed to record plan in issue thread: {e}")
