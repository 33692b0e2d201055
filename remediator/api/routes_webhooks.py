"""
GitHub webhook receiver

Runs the agent when an issue is opened, or when a person comments
`/remediate` on an issue. Deliveries must carry a valid X-Hub-Signature-256.
"""
import logging

from flask import Blueprint, request, jsonify

from remediator.agent.memory import MessageRole, classify_author
from remediator.api import auth
from remediator.config import settings
from remediator.errors import ConfigurationError, RemediatorError
from remediator.orchestrator.orchestrator import run_remediation

logger = logging.getLogger(__name__)

bp = Blueprint("webhooks", __name__, url_prefix="/webhooks")

TRIGGER_COMMAND = "/remediate"


def should_trigger(event: str, payload: dict) -> bool:
    """Whether a delivery should start a run"""
    action = payload.get("action")
    issue = payload.get("issue") or {}

    # Comments on pull requests arrive as issue events too
    if "pull_request" in issue:
        return False

    if event == "issues":
        return action == "opened"

    if event == "issue_comment" and action == "created":
        comment = payload.get("comment") or {}
        body = comment.get("body") or ""
        author_type = (comment.get("user") or {}).get("type")
        return classify_author(author_type, body) == MessageRole.USER and TRIGGER_COMMAND in body

    return False


@bp.route("/github", methods=["POST"])
async def github_webhook():
    if not settings.WEBHOOK_SECRET:
        return jsonify({"detail": "Webhook secret is not configured"}), 503

    body = request.get_data()
    signature = request.headers.get(auth.SIGNATURE_HEADER, "")
    if not auth.verify_webhook_signature(settings.WEBHOOK_SECRET, body, signature):
        return jsonify({"detail": "Invalid signature"}), 401

    event = request.headers.get("X-GitHub-Event", "")
    if event == "ping":
        return jsonify({"status": "pong"})

    payload = request.get_json(silent=True) or {}
    if not should_trigger(event, payload):
        return jsonify({"status": "ignored", "event": event})

    issue_number = payload["issue"]["number"]
    update = {"ISSUE_NUMBER": issue_number, "USER_PROMPT_PATH": None}
    repository = (payload.get("repository") or {}).get("full_name")
    if repository and not settings.GITHUB_REPOSITORY:
        update["GITHUB_REPOSITORY"] = repository

    logger.info(f"📨 Webhook {event}: running agent for issue #{issue_number}")
    try:
        outcome = await run_remediation(settings.model_copy(update=update))
    except ConfigurationError as e:
        return jsonify({"detail": str(e)}), 400
    except RemediatorError as e:
        logger.error(f"❌ Webhook run failed: {e}")
        return jsonify({"detail": str(e)}), 502

    return jsonify({
        "status": "completed",
        "issue_number": issue_number,
        "approved": outcome.verdict.approved,
        "patches": len(outcome.result.patches),
        "pull_request": outcome.pull_request.url if outcome.pull_request else None,
    })
