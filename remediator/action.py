"""
Action entrypoint — one remediation run per invocation

Reads settings from the environment (GitHub Action inputs arrive as INPUT_*),
runs the agent and exits 0 on success, 1 on any error.
"""
import asyncio
import logging
import sys

from remediator.config import configure_logging, settings
from remediator.errors import RemediatorError
from remediator.orchestrator.orchestrator import run_remediation

logger = logging.getLogger(__name__)


def main() -> int:
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} starting ({settings.AGENT_MODE})")

    try:
        outcome = asyncio.run(run_remediation(settings))
    except RemediatorError as e:
        logger.error(f"❌ {type(e).__name__}: {e}")
        return 1
    except Exception:
        logger.exception("❌ Unexpected error during remediation")
        return 1

    if not outcome.verdict.approved:
        logger.error("❌ Proposal rejected by the safety gate")
        return 1
    if outcome.pull_request:
        logger.info(f"✅ Pull request: {outcome.pull_request.url}")
    logger.info("✅ Remediation completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
