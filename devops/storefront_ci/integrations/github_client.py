"""
GitHub Client - REST API access over httpx.

Provides:
- Pull request comments (list, create, update, upsert by marker)
- Commit statuses (create, look up by context)
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

import httpx

from ..core.logger import get_logger
from ..config import get_config


class GitHubAPIError(Exception):
    """A GitHub REST call answered with an unexpected status."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GitHubResult:
    """Result of a GitHub operation."""
    success: bool
    message: str = ""
    url: Optional[str] = None
    comment_id: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "url": self.url,
            "comment_id": self.comment_id,
            "errors": self.errors,
        }


class GitHubClient:
    """
    GitHub REST client.

    Usage:
        client = GitHubClient(token="...")
        await client.upsert_comment(
            owner="acme",
            repo="storefront",
            number=42,
            body="<!-- preview -->\nPreview: https://...",
            marker="<!-- preview -->",
        )
    """

    def __init__(self, token: str = None, base_url: str = None):
        """
        Initialize GitHub client.

        Args:
            token: GitHub token. If not provided, read from configuration.
            base_url: API root, for GitHub Enterprise.
        """
        app_config = get_config()
        self.token = token if token is not None else app_config.github.token
        self.base_url = base_url or app_config.github.api_url
        self.logger = get_logger("GitHubClient")
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_rest_client(self) -> httpx.AsyncClient:
        """Get or create REST HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=30.0,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("message", f"HTTP {response.status_code}")
        except ValueError:
            return f"HTTP {response.status_code}"

    async def list_comments(self, owner: str, repo: str, number: int) -> List[Dict[str, Any]]:
        """
        List comments on an issue or pull request (all pages).

        Raises:
            GitHubAPIError: if any page cannot be read
        """
        client = await self._get_rest_client()
        comments: List[Dict[str, Any]] = []
        page = 1

        while True:
            response = await client.get(
                f"/repos/{owner}/{repo}/issues/{number}/comments",
                params={"per_page": 100, "page": page},
            )
            if response.status_code != 200:
                message = self._error_message(response)
                self.logger.error(f"List comments failed: {message}")
                raise GitHubAPIError(f"List comments failed: {message}", response.status_code)
            batch = response.json()
            comments.extend(batch)
            if len(batch) < 100:
                break
            page += 1

        return comments

    async def create_comment(self, owner: str, repo: str, number: int, body: str) -> GitHubResult:
        result = GitHubResult(success=False)
        try:
            client = await self._get_rest_client()
            response = await client.post(
                f"/repos/{owner}/{repo}/issues/{number}/comments",
                json={"body": body},
            )
            if response.status_code == 201:
                data = response.json()
                result.success = True
                result.message = "Comment created"
                result.url = data.get("html_url")
                result.comment_id = data.get("id")
            else:
                result.errors.append(self._error_message(response))
        except httpx.HTTPError as e:
            result.errors.append(str(e))
            self.logger.error(f"Create comment failed: {e}")
        return result

    async def update_comment(self, owner: str, repo: str, comment_id: int, body: str) -> GitHubResult:
        result = GitHubResult(success=False, comment_id=comment_id)
        try:
            client = await self._get_rest_client()
            response = await client.patch(
                f"/repos/{owner}/{repo}/issues/comments/{comment_id}",
                json={"body": body},
            )
            if response.status_code == 200:
                result.success = True
                result.message = "Comment updated"
                result.url = response.json().get("html_url")
            else:
                result.errors.append(self._error_message(response))
        except httpx.HTTPError as e:
            result.errors.append(str(e))
            self.logger.error(f"Update comment failed: {e}")
        return result

    async def upsert_comment(
        self,
        owner: str,
        repo: str,
        number: int,
        body: str,
        marker: str,
    ) -> GitHubResult:
        """
        Edit the comment carrying ``marker`` if one exists, otherwise create it.
        Nothing is created unless every existing comment could be read.
        """
        try:
            existing = await self.list_comments(owner, repo, number)
        except (httpx.HTTPError, GitHubAPIError) as e:
            return GitHubResult(success=False, errors=[str(e)])

        for comment in existing:
            if marker in (comment.get("body") or ""):
                return await self.update_comment(owner, repo, comment["id"], body)

        return await self.create_comment(owner, repo, number, body)

    async def create_commit_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        state: str,
        context: str,
        description: str = "",
        target_url: str = None,
    ) -> GitHubResult:
        result = GitHubResult(success=False)
        payload = {"state": state, "context": context, "description": description[:140]}
        if target_url:
            payload["target_url"] = target_url
        try:
            client = await self._get_rest_client()
            response = await client.post(f"/repos/{owner}/{repo}/statuses/{sha}", json=payload)
            if response.status_code == 201:
                result.success = True
                result.message = f"Status {context}={state} set on {sha[:7]}"
                result.url = response.json().get("url")
            else:
                result.errors.append(self._error_message(response))
        except httpx.HTTPError as e:
            result.errors.append(str(e))
            self.logger.error(f"Create commit status failed: {e}")
        return result

    async def get_commit_status(self, owner: str, repo: str, ref: str, context: str) -> Optional[Dict[str, Any]]:
        """
        Latest status for ``context`` on ``ref``, or None if none was set.

        Raises:
            GitHubAPIError: if the combined status cannot be read
        """
        client = await self._get_rest_client()
        response = await client.get(f"/repos/{owner}/{repo}/commits/{ref}/status")
        if response.status_code != 200:
            raise GitHubAPIError(
                f"Read commit status failed: {self._error_message(response)}", response.status_code,
            )
        for status in response.json().get("statuses") or []:
            if status.get("context") == context:
                return status
        return None
