import pytest

from conftest import FakeGitHub
from remediator.models import FilePatch
from remediator.services.pull_requests import BRANCH_PREFIX, PullRequestManager
from remediator.services.render import render_pull_request_body

# ---------------------------------------------------------------------------
# PR body
# ---------------------------------------------------------------------------

def test_body_lists_changes_and_context():
    patches = [
        FilePatch(file="scripts/cleanup.sh", action="create", content="x"),
        FilePatch(file="old.log", action="delete"),
    ]
    body = render_pull_request_body(
        "## Execution Summary", patches, issue_number=7,
        knowledge_bases=["runbook.md"], tool_servers=["filesystem"],
    )
    assert "This PR addresses issue #7" in body
    assert "This PR includes 2 file change(s)" in body
    assert "- ✨ **create**: `scripts/cleanup.sh`" in body
    assert "- 🗑️ **delete**: `old.log`" in body
    assert "### Knowledge Base Referenced\n- runbook.md" in body
    assert "### Tool Servers\n- filesystem" in body
    assert "Human review required" in body

def test_body_without_issue_or_context():
    body = render_pull_request_body("summary", [], issue_number=None)
    assert "addresses issue" not in body
    assert "Knowledge Base Referenced" not in body

# ---------------------------------------------------------------------------
# PR creation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_pr_commits_every_patch(fake_github):
    fake_github.files["README.md"] = "old"
    fake_github.files["old.log"] = "junk"
    patches = [
        FilePatch(file="scripts/cleanup.sh", action="create", content="#!/bin/bash\n"),
        FilePatch(file="README.md", action="update", content="new"),
        FilePatch(file="old.log", action="delete"),
        FilePatch(file="never-existed.log", action="delete"),
    ]

    pr = await PullRequestManager(fake_github, base_branch="main").create_pr(
        7, "Fix for issue #7", "summary", patches
    )

    assert pr.branch.startswith(f"{BRANCH_PREFIX}-7-")
    assert fake_github.branches[pr.branch] == "base-sha"
    assert fake_github.writes == [
        ("put", "scripts/cleanup.sh", "Create scripts/cleanup.sh", None),
        ("put", "README.md", "Update README.md", "sha-README.md"),
        ("delete", "old.log", "Delete old.log", "sha-old.log"),
    ]
    opened = fake_github.pull_requests[0]
    assert opened["title"] == "[Remediator] Fix for issue #7"
    assert opened["base"] == "main"
    assert pr.number == opened["number"]
    assert pr.url == opened["html_url"]

@pytest.mark.asyncio
async def test_prompt_runs_use_prompt_branch(fake_github):
    pr = await PullRequestManager(fake_github).create_pr(
        None, "Rotate logs", "summary", [FilePatch(file="a.txt", action="create", content="a")]
    )
    assert pr.branch.startswith(f"{BRANCH_PREFIX}-prompt-")
