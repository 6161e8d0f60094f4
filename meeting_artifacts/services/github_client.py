# meeting_artifacts/services/github_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from meeting_artifacts.services.api_client import ApiClient, ApiClientError

logger = logging.getLogger("meeting_artifacts.github")

GITHUB_API_URL = "https://api.github.com"
PAGE_SIZE = 100


class GitHubClientError(ApiClientError):
    """
    Raised when a GitHub REST call fails.
    """


class GitHubClient(ApiClient):
    """
    Thin GitHub REST wrapper covering what a meeting run needs: listing
    repositories and agenda issues, searching, and creating or updating the
    meeting issue.
    """

    service_name = "GitHub"
    error_class = GitHubClientError

    def __init__(
        self,
        token: Optional[str],
        base_url: str = GITHUB_API_URL,
        timeout_seconds: float = 10.0,
    ) -> None:
        # Without a token requests are anonymous (read-only, low rate limit).
        super().__init__(
            base_url,
            token=token,
            timeout_seconds=timeout_seconds,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    async def get_paginated(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        items_key: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Follow `Link: rel="next"` headers and concatenate every page.

        `items_key` names the list inside object payloads (the search API
        wraps results in {"items": [...]}); list payloads are used directly.
        """
        query = {"per_page": PAGE_SIZE, **(params or {})}
        url: Optional[str] = path
        results: List[Dict[str, Any]] = []

        while url:
            resp = await self.get_response(url, params=query)
            payload = resp.json()
            page = payload.get(items_key, []) if items_key else payload
            results.extend(page)

            next_link = (getattr(resp, "links", None) or {}).get("next") or {}
            url = next_link.get("url")
            # The next URL already carries the query string.
            query = None

        return results

    async def list_public_repos(self, org: str) -> List[Dict[str, Any]]:
        return await self.get_paginated(
            f"/orgs/{org}/repos", params={"type": "public"}
        )

    async def list_open_issues(
        self, owner: str, repo: str, label: str
    ) -> List[Dict[str, Any]]:
        """
        Open issues of one repository carrying `label`.

        The issues endpoint also returns pull requests; callers filter them.
        """
        return await self.get_paginated(
            f"/repos/{owner}/{repo}/issues",
            params={"labels": label, "state": "open"},
        )

    async def search_issues(self, query: str) -> List[Dict[str, Any]]:
        return await self.get_paginated(
            "/search/issues", params={"q": query}, items_key="items"
        )

    async def find_issue_by_title(
        self, owner: str, repo: str, title: str
    ) -> Optional[Dict[str, Any]]:
        """
        Return the open issue whose title is exactly `title`, if any.

        Search matches words rather than whole titles, so the results are
        checked for an exact match.
        """
        query = f'is:open in:title repo:"{owner}/{repo}" "{title}"'
        payload = await self.get_json(
            "/search/issues", params={"q": query, "per_page": 20}
        )
        for item in payload.get("items", []):
            if item.get("title") == title:
                return item
        return None

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": title, "body": body}
        if labels:
            data["labels"] = labels
        issue = await self.post_json(f"/repos/{owner}/{repo}/issues", json=data)
        logger.info("Created issue %s/%s#%s", owner, repo, issue.get("number"))
        return issue

    async def update_issue(
        self, owner: str, repo: str, number: int, body: str
    ) -> Dict[str, Any]:
        issue = await self.patch_json(
            f"/repos/{owner}/{repo}/issues/{number}", json={"body": body}
        )
        logger.info("Updated issue %s/%s#%s", owner, repo, number)
        return issue
