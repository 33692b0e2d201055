"""
Agent API routes — trigger runs and inspect tool servers

Endpoints:
- POST /agent/run    Run the agent for an issue or an ad-hoc prompt
- GET  /agent/tools  List the tools advertised by the configured servers
"""
import logging

from flask import Blueprint, request, jsonify

from remediator.agent.tool_sessions import SessionFailurePolicy, ToolSessionManager
from remediator.api import auth
from remediator.config import settings
from remediator.config_loader import ConfigLoader
from remediator.errors import ConfigurationError, RemediatorError
from remediator.orchestrator import strategies
from remediator.orchestrator.orchestrator import run_remediation

logger = logging.getLogger(__name__)

bp = Blueprint("agent", __name__, url_prefix="/agent")

MAX_PROMPT_CHARS = 5000


@bp.route("/run", methods=["POST"])
@auth.token_required
async def agent_run():
    """
    Run the remediation agent.

    Body: {"prompt": "...", "issue_number": 12, "dry_run": true, "mode": "propose"}
    At least one of prompt / issue_number is required.
    Returns: execution result with plan, step results, patches and PR
    """
    data = request.get_json(silent=True) or {}
    prompt = data.get("prompt")
    issue_number = data.get("issue_number")

    if not prompt and issue_number is None:
        return jsonify({"detail": "Provide 'prompt' or 'issue_number' in request body"}), 400
    if prompt and len(prompt) > MAX_PROMPT_CHARS:
        return jsonify({"detail": f"Prompt too long (max {MAX_PROMPT_CHARS} chars)"}), 400
    if issue_number is not None and not isinstance(issue_number, int):
        return jsonify({"detail": "'issue_number' must be an integer"}), 400

    mode = data.get("mode", settings.AGENT_MODE)
    if mode not in {s.value for s in strategies.StrategyType}:
        return jsonify({"detail": f"Unknown mode: {mode}"}), 400

    run_settings = settings.model_copy(update={
        "ISSUE_NUMBER": issue_number,
        "AGENT_MODE": mode,
        "DRY_RUN": bool(data.get("dry_run", settings.DRY_RUN)),
    })

    try:
        outcome = await run_remediation(run_settings, objective=prompt)
    except ConfigurationError as e:
        return jsonify({"detail": str(e)}), 400
    except RemediatorError as e:
        logger.error(f"❌ Agent run failed: {e}")
        return jsonify({"detail": str(e)}), 502

    return jsonify(outcome.to_dict())


@bp.route("/tools", methods=["GET"])
@auth.token_required
async def list_tools():
    """List the tools advertised by every configured tool server"""
    try:
        config = ConfigLoader(settings.WORKING_DIRECTORY).load()
        async with ToolSessionManager(
            policy=SessionFailurePolicy.CONTINUE,
            call_timeout=settings.TOOL_CALL_TIMEOUT_SECONDS,
        ) as tools:
            await tools.open(config.tool_descriptors)
            catalog = [entry.to_schema() for entry in tools.list_all()]
            failures = tools.failures
    except ConfigurationError as e:
        return jsonify({"detail": str(e)}), 400

    return jsonify({
        "tools": catalog,
        "count": len(catalog),
        "unavailable": failures,
    })
