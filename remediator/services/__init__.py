"""Services package — GitHub REST access, PR creation and rendering"""
from remediator.services.github_service import GitHubService
from remediator.services.pull_requests import PullRequestManager, PRInfo
from remediator.services.render import render_pull_request_body

__all__ = ["GitHubService", "PullRequestManager", "PRInfo", "render_pull_request_body"]
