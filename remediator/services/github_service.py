"""
GitHub REST client — issues, comments, refs, contents and pull requests

Thin async wrapper over httpx. Non-2xx responses raise GitHubError, except
content lookups where 404 means "file does not exist".
"""
from typing import Dict, Any, List, Optional
import base64
import logging

import httpx

from remediator.errors import GitHubError

logger = logging.getLogger(__name__)


class GitHubService:
    """GitHub REST API wrapper scoped to a single repository"""

    PAGE_SIZE = 100

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self.client.request(method, path, **kwargs)
        if response.status_code >= 400:
            raise GitHubError(response.status_code, response.text[:500])
        return response

    # ===== Issues =====

    async def fetch_issue(self, number: int) -> Dict[str, Any]:
        """Fetch an issue (title, body, user, ...)"""
        response = await self._request("GET", f"{self._repo_path}/issues/{number}")
        return response.json()

    async def fetch_issue_comments(self, number: int, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Fetch issue comments in chronological order.

        Args:
            number: Issue number
            limit: Keep only the most recent `limit` comments

        Returns:
            List of comment objects, oldest first
        """
        comments: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = await self._request(
                "GET",
                f"{self._repo_path}/issues/{number}/comments",
                params={"per_page": self.PAGE_SIZE, "page": page},
            )
            batch = response.json()
            comments.extend(batch)
            if len(batch) < self.PAGE_SIZE:
                break
            page += 1
        return comments[-limit:] if limit else comments

    async def post_comment(self, number: int, body: str) -> Dict[str, Any]:
        """Post a comment on an issue or pull request"""
        response = await self._request(
            "POST", f"{self._repo_path}/issues/{number}/comments", json={"body": body}
        )
        return response.json()

    # ===== Git refs =====

    async def get_branch_sha(self, branch: str) -> str:
        response = await self._request("GET", f"{self._repo_path}/git/ref/heads/{branch}")
        return response.json()["object"]["sha"]

    async def create_branch(self, branch: str, sha: str) -> None:
        await self._request(
            "POST",
            f"{self._repo_path}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    # ===== Contents =====

    async def get_file_sha(self, path: str, ref: str) -> Optional[str]:
        """Blob sha of a file on a branch, or None if it does not exist"""
        response = await self.client.get(f"{self._repo_path}/contents/{path}", params={"ref": ref})
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise GitHubError(response.status_code, response.text[:500])
        data = response.json()
        return data.get("sha") if isinstance(data, dict) else None

    async def put_file(
        self,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> None:
        """Create (sha=None) or update a file on a branch"""
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha
        await self._request("PUT", f"{self._repo_path}/contents/{path}", json=payload)

    async def delete_file(self, path: str, message: str, branch: str, sha: str) -> None:
        await self._request(
            "DELETE",
            f"{self._repo_path}/contents/{path}",
            json={"message": message, "branch": branch, "sha": sha},
        )

    # ===== Pull requests =====

    async def create_pull_request(self, title: str, head: str, base: str, body: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"{self._repo_path}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )
        return response.json()
