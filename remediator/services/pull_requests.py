"""
Pull request creation for human-in-the-loop review

Creates a proposal branch off the base branch, commits each patch through
the contents API and opens a pull request. Patches are never applied to the
working tree of the runner.
"""
from typing import List, Optional
from dataclasses import dataclass
import logging
import time

from remediator.models import FilePatch, PatchAction
from remediator.services.render import render_pull_request_body

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "remediator/proposal"


@dataclass
class PRInfo:
    number: int
    url: str
    branch: str


class PullRequestManager:
    """Opens remediation pull requests"""

    def __init__(self, github, base_branch: str = "main"):
        self.github = github
        self.base_branch = base_branch

    async def create_pr(
        self,
        issue_number: Optional[int],
        title: str,
        summary: str,
        patches: List[FilePatch],
        knowledge_bases: Optional[List[str]] = None,
        tool_servers: Optional[List[str]] = None,
    ) -> PRInfo:
        """
        Create a branch, commit the patches and open a pull request.

        Args:
            issue_number: Issue being remediated (None for prompt-file runs)
            title: PR title (prefixed with [Remediator])
            summary: Execution summary for the PR body
            patches: Patches that already passed the safety gate

        Returns:
            PRInfo with number, url and branch
        """
        logger.info(f"📝 Creating PR with {len(patches)} patch(es)")

        branch = f"{BRANCH_PREFIX}-{issue_number or 'prompt'}-{int(time.time())}"
        base_sha = await self.github.get_branch_sha(self.base_branch)
        await self.github.create_branch(branch, base_sha)
        logger.info(f"🌿 Created branch: {branch}")

        for patch in patches:
            await self._apply_patch(branch, patch)

        body = render_pull_request_body(
            summary,
            patches,
            issue_number=issue_number,
            knowledge_bases=knowledge_bases,
            tool_servers=tool_servers,
        )
        pr = await self.github.create_pull_request(
            title=f"[Remediator] {title}",
            head=branch,
            base=self.base_branch,
            body=body,
        )

        logger.info(f"✅ Created PR #{pr['number']}: {pr['html_url']}")
        return PRInfo(number=pr["number"], url=pr["html_url"], branch=branch)

    async def _apply_patch(self, branch: str, patch: FilePatch) -> None:
        logger.info(f"  Applying patch: {patch.action.value} {patch.file}")
        sha = await self.github.get_file_sha(patch.file, branch)

        if patch.action == PatchAction.DELETE:
            if sha is None:
                logger.info(f"  File {patch.file} not found, skipping deletion")
                return
            await self.github.delete_file(patch.file, f"Delete {patch.file}", branch, sha)
            return

        verb = "Update" if sha else "Create"
        await self.github.put_file(patch.file, patch.content, f"{verb} {patch.file}", branch, sha=sha)
