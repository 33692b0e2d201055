import json

import pytest

from conftest import FakeGitHub, FakeModel, plan_json
from remediator.config import Settings
from remediator.errors import ConfigurationError, ModelError
from remediator.models import FilePatch, ModelResponse
from remediator.orchestrator.orchestrator import Orchestrator, run_remediation

CLEANUP_PATCHES = json.dumps([
    {"file": "scripts/cleanup.sh", "action": "create", "content": "#!/bin/bash\nfind /tmp -mtime +7 -delete\n"},
])


@pytest.fixture
def workdir(tmp_path):
    (tmp_path / "system-prompt.md").write_text("You are a careful SRE.", encoding="utf-8")
    return tmp_path


def run_settings(workdir, **overrides):
    values = {
        "GITHUB_TOKEN": "gh",
        "GITHUB_REPOSITORY": "acme/infra",
        "WORKING_DIRECTORY": str(workdir),
        "ISSUE_NUMBER": 7,
        "USER_PROMPT_PATH": None,
        "AGENT_MODE": "plan_execute",
        "DRY_RUN": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)

# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_disk_space_cleanup_without_tool_servers(agent_config):
    model = FakeModel([plan_json("Check disk usage", "Find large files", "Draft cleanup"), "ok", "ok", "ok", "[]"])
    result = await Orchestrator(model, agent_config).run("disk space cleanup")

    assert len(result.plan.steps) >= 1
    assert len(result.results) == len(result.plan.steps) == 3
    assert [r.step for r in result.results] == [1, 2, 3]
    assert result.patches == []

@pytest.mark.asyncio
async def test_disk_space_cleanup_with_unusable_model(agent_config):
    result = await Orchestrator(FakeModel(["garbage"]), agent_config).run("disk space cleanup")
    assert [s.action for s in result.plan.steps] == ["Manual intervention required"]
    assert len(result.results) == 1
    assert result.patches == []

@pytest.mark.asyncio
async def test_propose_wraps_single_call(agent_config):
    proposal = ModelResponse(
        reasoning="Old logs fill the disk",
        patches=[FilePatch(file="scripts/rotate.sh", action="create", content="logrotate -f\n")],
    )
    model = FakeModel(proposal=proposal)
    result = await Orchestrator(model, agent_config).propose("disk space cleanup")

    assert len(model.calls) == 1
    assert result.plan.steps[0].index == 1
    assert result.results[0].success
    assert result.results[0].output == "Old logs fill the disk"
    assert [p.file for p in result.patches] == ["scripts/rotate.sh"]

@pytest.mark.asyncio
async def test_propose_failure_is_an_empty_proposal(agent_config):
    result = await Orchestrator(FakeModel(proposal=ModelError("bad json")), agent_config).propose("o")
    assert result.patches == []
    assert result.results[0].success is False
    assert "bad json" in result.plan.reasoning

# ---------------------------------------------------------------------------
# Full run lifecycle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_run_opens_pull_request(workdir):
    github = FakeGitHub()
    model = FakeModel([plan_json("Check disk usage", "Write cleanup script"), "99% used", "drafted", CLEANUP_PATCHES])

    outcome = await run_remediation(run_settings(workdir), model=model, github=github)

    assert outcome.verdict.approved
    assert outcome.pull_request is not None
    assert github.files["scripts/cleanup.sh"].startswith("#!/bin/bash")
    assert github.pull_requests[0]["title"] == "[Remediator] Fix for issue #7"
    bodies = [c["body"] for c in github.comments]
    assert "📋 **Execution Plan Created**" in bodies[0]
    assert "✅ **Step 1:**" in bodies[1]
    assert f"Pull Request: #{outcome.pull_request.number}" in bodies[-1]
    assert github.closed
    # the issue text is the objective
    assert "Disk full\n\nRunner disk is at 100%" in model.calls[0]["user"]

@pytest.mark.asyncio
async def test_no_patches_posts_no_changes_comment(workdir):
    github = FakeGitHub()
    model = FakeModel([plan_json("Investigate"), "all fine", "[]"])

    outcome = await run_remediation(run_settings(workdir), model=model, github=github)

    assert outcome.pull_request is None
    assert github.pull_requests == []
    assert "⚠️ **No Changes Required**" in github.comments[-1]["body"]

@pytest.mark.asyncio
async def test_unsafe_patches_are_not_proposed(workdir):
    github = FakeGitHub()
    unsafe = json.dumps([{"file": "../../etc/cron.d/job", "action": "create", "content": "* * * * * root x"}])
    model = FakeModel([plan_json("Schedule cleanup"), "ok", unsafe])

    outcome = await run_remediation(run_settings(workdir), model=model, github=github)

    assert not outcome.verdict.approved
    assert outcome.pull_request is None
    assert github.pull_requests == []
    assert "Proposal Rejected by Safety Gate" in github.comments[-1]["body"]
    assert outcome.to_dict()["violations"]

@pytest.mark.asyncio
async def test_dry_run_skips_pull_request(workdir):
    github = FakeGitHub()
    model = FakeModel([plan_json("Write cleanup script"), "ok", CLEANUP_PATCHES])

    outcome = await run_remediation(run_settings(workdir, DRY_RUN=True), model=model, github=github)

    assert len(outcome.result.patches) == 1
    assert outcome.pull_request is None
    assert github.branches == {}

@pytest.mark.asyncio
async def test_propose_mode_uses_one_shot_call(workdir):
    github = FakeGitHub()
    proposal = ModelResponse(
        reasoning="r", patches=[FilePatch(file="scripts/a.sh", action="create", content="echo\n")]
    )
    model = FakeModel(proposal=proposal)

    outcome = await run_remediation(run_settings(workdir, AGENT_MODE="propose"), model=model, github=github)

    assert len(model.calls) == 1
    assert outcome.pull_request is not None

@pytest.mark.asyncio
async def test_prompt_file_run_without_issue(workdir):
    prompt = workdir / "prompt.md"
    prompt.write_text("Rotate the nginx logs", encoding="utf-8")
    github = FakeGitHub()
    model = FakeModel([plan_json("Write logrotate config"), "ok", CLEANUP_PATCHES])

    outcome = await run_remediation(
        run_settings(workdir, ISSUE_NUMBER=None, USER_PROMPT_PATH=str(prompt)), model=model, github=github
    )

    assert "Rotate the nginx logs" in model.calls[0]["user"]
    assert github.comments == []
    assert outcome.pull_request.branch.startswith("remediator/proposal-prompt-")
    assert github.pull_requests[0]["title"] == "[Remediator] Rotate the nginx logs"

@pytest.mark.asyncio
async def test_missing_objective_is_configuration_error(workdir):
    with pytest.raises(ConfigurationError, match="No objective"):
        await run_remediation(
            run_settings(workdir, ISSUE_NUMBER=None), model=FakeModel(), github=FakeGitHub()
        )

@pytest.mark.asyncio
async def test_unresolved_tool_variable_fails_before_running(workdir, monkeypatch):
    monkeypatch.delenv("MISSING_VAR", raising=False)
    servers = workdir / "mcp-servers"
    servers.mkdir()
    (servers / "secret.yml").write_text("command: server\nenv:\n  KEY: ${env:MISSING_VAR}\n", encoding="utf-8")
    model = FakeModel()
    github = FakeGitHub()

    with pytest.raises(ConfigurationError, match="MISSING_VAR"):
        await run_remediation(run_settings(workdir), model=model, github=github)
    assert model.calls == []
    assert github.closed
