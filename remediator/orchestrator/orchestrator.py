"""
Core remediation orchestration

The orchestrator handles:
1. Planning (Planner → ExecutionPlan)
2. Step execution (Executor → StepResults)
3. Patch synthesis (PatchSynthesizer → FilePatches)

run_remediation() wraps one full run: load configuration, open tool
sessions, load the issue thread, orchestrate, gate the patches, open a pull
request (or explain why not), and close every tool session.
"""
from typing import Dict, Any, Optional
from dataclasses import asdict, dataclass
from pathlib import Path
import logging

from remediator.agent.executor import Executor, ExecutionResult, StepResult, render_summary
from remediator.agent.memory import MemoryLog
from remediator.agent.patches import PatchSynthesizer
from remediator.agent.planner import ExecutionPlan, PlanStep, Planner
from remediator.agent.safety import SafetyVerdict, validate_patches
from remediator.agent.tool_sessions import SessionFailurePolicy, ToolSessionManager
from remediator.config import AgentConfiguration, Settings
from remediator.config_loader import ConfigLoader
from remediator.errors import ConfigurationError
from remediator.models import ModelResponse
from remediator.orchestrator import strategies
from remediator.orchestrator.model_client import ModelClient
from remediator.services.github_service import GitHubService
from remediator.services.pull_requests import PRInfo, PullRequestManager

logger = logging.getLogger(__name__)


class Orchestrator:
    """Sequences Planner → Executor → Patch Synthesizer for one objective"""

    def __init__(
        self,
        model,
        config: AgentConfiguration,
        tools=None,
        memory=None,
        max_steps: int = 10,
        max_patch_files: int = 25,
        max_patch_bytes: int = 50 * 1024,
    ):
        self.model = model
        self.config = config
        self.memory = memory
        self.planner = Planner(model, config, tools=tools, memory=memory, max_steps=max_steps)
        self.patch_synthesizer = PatchSynthesizer(
            model, config, max_files=max_patch_files, max_file_bytes=max_patch_bytes
        )
        self.executor = Executor(model, config, self.patch_synthesizer, memory=memory, tools=tools)

    async def run(self, objective: str) -> ExecutionResult:
        """Plan, execute and synthesize patches"""
        logger.info(f"🤖 Starting agent workflow for: {objective[:80]}")
        plan = await self.planner.create_plan(objective)
        result = await self.executor.execute_plan(plan)
        logger.info("✅ Agent workflow completed")
        return result

    async def propose(self, objective: str) -> ExecutionResult:
        """
        One-shot strategy: a single model call returns reasoning + patches.

        A failed call degrades to an empty proposal with the error as reasoning.
        """
        logger.info(f"🤖 Requesting one-shot proposal for: {objective[:80]}")
        system_prompt = f"{self.config.system_prompt}\n\n{await self.planner.build_context()}"

        error: Optional[str] = None
        try:
            response = await self.model.generate(system_prompt, f"Objective: {objective}")
        except Exception as e:
            logger.error(f"❌ Proposal failed: {e}")
            error = str(e)
            response = ModelResponse(reasoning=f"No proposal could be generated: {e}")

        plan = ExecutionPlan(
            objective=objective,
            reasoning=response.reasoning,
            steps=[PlanStep(index=1, action="Propose file changes for the objective", reasoning=response.reasoning)],
            metadata={"strategy": strategies.StrategyType.PROPOSE.value},
        )
        results = [StepResult(step=1, success=error is None, output=response.reasoning, error=error)]
        return ExecutionResult(
            plan=plan,
            results=results,
            summary=render_summary(plan, results),
            patches=list(response.patches),
        )


@dataclass
class RunOutcome:
    """What a full remediation run produced"""
    result: ExecutionResult
    verdict: SafetyVerdict
    pull_request: Optional[PRInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data["approved"] = self.verdict.approved
        data["violations"] = list(self.verdict.violations)
        data["pull_request"] = asdict(self.pull_request) if self.pull_request else None
        return data


async def resolve_objective(settings: Settings, github, objective: Optional[str] = None) -> str:
    """Objective text: explicit override, then the prompt file, then the issue"""
    if objective:
        return objective
    if settings.USER_PROMPT_PATH:
        path = Path(settings.USER_PROMPT_PATH)
        if not path.is_file():
            raise ConfigurationError(f"User prompt file not found: {path}")
        return path.read_text(encoding="utf-8")
    if settings.ISSUE_NUMBER is None:
        raise ConfigurationError(
            "No objective: set ISSUE_NUMBER or USER_PROMPT_PATH (action inputs issue_number / user_prompt_path)"
        )
    issue = await github.fetch_issue(settings.ISSUE_NUMBER)
    return f"{issue.get('title', '')}\n\n{issue.get('body') or ''}"


async def _notify(memory: Optional[MemoryLog], text: str) -> None:
    if memory is None:
        return
    try:
        await memory.add_agent_message(text)
    except Exception as e:
        logger.warning(f"⚠️ Failed to post to issue thread: {e}")


async def run_remediation(
    settings: Settings,
    model: Optional[ModelClient] = None,
    github=None,
    objective: Optional[str] = None,
) -> RunOutcome:
    """
    Execute one complete remediation run.

    Args:
        settings: Run settings
        model: Model client override (defaults to one built from settings)
        github: GitHub service override (defaults to one built from settings)
        objective: Objective text overriding the prompt file and issue

    Returns:
        RunOutcome with the execution result, safety verdict and PR (if any)

    Raises:
        ConfigurationError: missing prompt, objective or repository settings
    """
    config = ConfigLoader(settings.WORKING_DIRECTORY).load()
    model = model or ModelClient.from_settings(settings)
    if github is None:
        owner, repo = settings.repository
        github = GitHubService(settings.GITHUB_TOKEN, owner, repo, api_url=settings.GITHUB_API_URL)

    async with github, ToolSessionManager(
        policy=SessionFailurePolicy(settings.TOOL_SESSION_POLICY),
        call_timeout=settings.TOOL_CALL_TIMEOUT_SECONDS,
    ) as tools:
        await tools.open(config.tool_descriptors)
        logger.info(f"✅ Initialized {len(tools.list_all())} tool(s)")

        memory: Optional[MemoryLog] = None
        if settings.ISSUE_NUMBER is not None:
            memory = MemoryLog(github, settings.ISSUE_NUMBER, comment_limit=settings.MEMORY_COMMENT_LIMIT)
            await memory.load()

        objective = await resolve_objective(settings, github, objective)
        orchestrator = Orchestrator(
            model,
            config,
            tools=tools,
            memory=memory,
            max_steps=settings.AGENT_MAX_STEPS,
            max_patch_files=settings.MAX_PATCH_FILES,
            max_patch_bytes=settings.MAX_PATCH_BYTES,
        )

        if settings.AGENT_MODE == strategies.StrategyType.PROPOSE.value:
            result = await orchestrator.propose(objective)
        else:
            result = await orchestrator.run(objective)

        verdict = validate_patches(result.patches, settings.MAX_PATCH_FILES, settings.MAX_PATCH_BYTES)
        outcome = RunOutcome(result=result, verdict=verdict)

        if not verdict.approved:
            logger.error(f"❌ Safety gate rejected the proposal: {'; '.join(verdict.violations)}")
            violations = "\n".join(f"- {v}" for v in verdict.violations)
            await _notify(
                memory,
                f"⚠️ **Proposal Rejected by Safety Gate**\n\n{violations}\n\n{result.summary}",
            )
            return outcome

        if not result.patches:
            logger.info("⚠️ No patches generated, skipping PR creation")
            await _notify(
                memory,
                f"⚠️ **No Changes Required**\n\nThe analysis is complete, but no file changes are "
                f"proposed at this time.\n\n{result.summary}",
            )
            return outcome

        if settings.DRY_RUN:
            logger.info(f"🧪 Dry run: {len(result.patches)} patch(es) not submitted")
            return outcome

        if settings.ISSUE_NUMBER is not None:
            title = f"Fix for issue #{settings.ISSUE_NUMBER}"
        else:
            title = (objective.strip().splitlines() or ["Remediation proposal"])[0][:72]
        outcome.pull_request = await PullRequestManager(github, settings.BASE_BRANCH).create_pr(
            settings.ISSUE_NUMBER,
            title,
            result.summary,
            result.patches,
            knowledge_bases=[kb.name for kb in config.knowledge_bases],
            tool_servers=list(config.tool_descriptors.keys()),
        )
        await _notify(
            memory,
            f"**Remediator has created a proposal**\n\nPull Request: #{outcome.pull_request.number}\n\n"
            f"Please review the changes and merge if approved.",
        )
        return outcome
