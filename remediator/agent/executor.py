"""
Executor — Runs an ExecutionPlan step by step against the model

For each step:
1. Build a per-step prompt (objective, action, reasoning, referenced tool)
2. Ask the model to carry it out
3. Record a StepResult; an exception fails that step only
4. Post a ✅/❌ status comment to the issue thread

Then synthesize patches, render the summary and return an ExecutionResult.
"""
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
import time

from remediator.agent.planner import ExecutionPlan, PlanStep
from remediator.config import AgentConfiguration
from remediator.models import FilePatch

logger = logging.getLogger(__name__)

# GitHub rejects comments above 65536 characters
COMMENT_OUTPUT_LIMIT = 60000


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepResult:
    """Outcome of one plan step"""
    step: int
    success: bool
    output: str = ""
    error: Optional[str] = None
    latency_ms: int = 0

    @property
    def status(self) -> StepStatus:
        return StepStatus.SUCCEEDED if self.success else StepStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "latency_ms": self.latency_ms,
        }


@dataclass
class ExecutionResult:
    """Everything the PR step needs: plan, per-step results, summary, patches"""
    plan: ExecutionPlan
    results: List[StepResult] = field(default_factory=list)
    summary: str = ""
    patches: List[FilePatch] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary,
            "patches": [p.model_dump(mode="json") for p in self.patches],
            "steps_count": len(self.results),
        }


STEP_PROMPT = """Objective: {objective}
Current Step: {action}
Reasoning: {reasoning}
{tool_block}
Execute this step and provide the result. If you need to use a tool, describe what you would do.
Focus on safety and explain any commands or changes you would make.

Provide a detailed output of what was done or what should be done.
"""


def render_summary(plan: ExecutionPlan, results: List[StepResult]) -> str:
    """Markdown execution summary"""
    steps_by_index = {s.index: s for s in plan.steps}
    succeeded = sum(1 for r in results if r.success)

    lines = [
        "## Execution Summary",
        "",
        f"**Objective:** {plan.objective}",
        "",
        f"**Completed:** {succeeded}/{len(results)} steps",
        "",
        "### Results",
        "",
    ]
    for result in results:
        status = "✅" if result.success else "❌"
        step = steps_by_index.get(result.step)
        lines.append(f"{status} **Step {result.step}:** {step.action if step else 'Unknown'}")
        if result.error:
            lines.append(f"   Error: {result.error}")
        lines.append("")
    return "\n".join(lines)


class Executor:
    """
    Plan execution engine.

    One step's failure never stops the next step from running.
    """

    def __init__(
        self,
        model,
        config: AgentConfiguration,
        patch_synthesizer,
        memory=None,
        tools=None,
    ):
        self.model = model
        self.config = config
        self.patch_synthesizer = patch_synthesizer
        self.memory = memory
        self.tools = tools
        self.step_states: Dict[int, StepStatus] = {}

    async def execute_plan(self, plan: ExecutionPlan) -> ExecutionResult:
        """
        Execute every step in order and assemble the final result.

        Returns:
            ExecutionResult with exactly one StepResult per step
        """
        logger.info(f"🚀 Executing plan with {len(plan.steps)} step(s)")
        self.step_states = {s.index: StepStatus.PENDING for s in plan.steps}
        results: List[StepResult] = []

        for step in plan.steps:
            self.step_states[step.index] = StepStatus.RUNNING
            logger.info(f"  🔧 Step {step.index}: {step.action}")

            start_time = time.time()
            try:
                output = await self._execute_step(step, plan.objective)
                result = StepResult(step=step.index, success=True, output=output)
            except Exception as e:
                logger.error(f"  ❌ Step {step.index} failed: {e}")
                result = StepResult(step=step.index, success=False, output="", error=str(e) or type(e).__name__)
            result.latency_ms = int((time.time() - start_time) * 1000)

            self.step_states[step.index] = result.status
            results.append(result)
            await self._record_step(step, result)

            status = "✅" if result.success else "❌"
            logger.info(f"  {status} Step {step.index} done ({result.latency_ms}ms)")

        summary = render_summary(plan, results)
        patches = await self.patch_synthesizer.synthesize(plan, results)

        logger.info(
            f"🏁 Execution complete: {sum(r.success for r in results)}/{len(results)} steps succeeded, "
            f"{len(patches)} patch(es)"
        )
        return ExecutionResult(plan=plan, results=results, summary=summary, patches=patches)

    async def _execute_step(self, step: PlanStep, objective: str) -> str:
        user_prompt = STEP_PROMPT.format(
            objective=objective,
            action=step.action,
            reasoning=step.reasoning,
            tool_block=self._describe_tool(step.tool),
        )
        result = await self.model.complete(self.config.system_prompt, user_prompt)
        return result["text"]

    def _describe_tool(self, tool_name: Optional[str]) -> str:
        if not tool_name:
            return ""
        entry = self.tools.find(tool_name) if self.tools else None
        if entry is None:
            return f"Suggested tool: {tool_name} (not available in this run)\n"
        schema = json.dumps(entry.input_schema, indent=2, sort_keys=True)
        return f"Suggested tool: {entry.name} — {entry.description}\nTool input schema:\n{schema}\n"

    async def _record_step(self, step: PlanStep, result: StepResult) -> None:
        if self.memory is None:
            return
        try:
            if result.success:
                output = (result.output or "")[:COMMENT_OUTPUT_LIMIT]
                body = f"✅ **Step {step.index}:** {step.action}\n\n{output}"
            else:
                body = f"❌ **Step {step.index} Failed:** {step.action}\n\n{result.error}"
            await self.memory.add_agent_message(body)
        except Exception as e:
            logger.warning(f"⚠️ Failed to record step {step.index} in issue thread: {e}")
