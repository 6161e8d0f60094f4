# meeting_artifacts/services/agenda.py
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Iterable, List

from meeting_artifacts.schemas.agenda import AgendaEntry, AgendaIssue
from meeting_artifacts.services.github_client import GitHubClient

logger = logging.getLogger("meeting_artifacts.agenda")

AGENDA_STRATEGIES = ("repositories", "search")

# Concurrent per-repository requests; GitHub throttles larger bursts
# with its secondary rate limit.
DEFAULT_MAX_CONCURRENCY = 8

_LINK_BRACKETS = re.compile(r"([\[\]])")


def _is_pull_request(issue: Dict[str, Any]) -> bool:
    return bool(issue.get("pull_request"))


def _to_agenda_issue(issue: Dict[str, Any]) -> AgendaIssue:
    return AgendaIssue(
        number=issue["number"],
        title=issue["title"],
        url=issue["html_url"],
    )


def repository_from_url(repository_url: str) -> str:
    """
    "https://api.github.com/repos/nodejs/node" -> "nodejs/node".
    """
    owner, repo = repository_url.rstrip("/").split("/")[-2:]
    return f"{owner}/{repo}"


def group_issues_by_repository(issues: Iterable[Dict[str, Any]]) -> List[AgendaEntry]:
    """
    Bucket search results by owning repository, keeping the order in which
    repositories first appear. Pull requests are dropped.
    """
    grouped: Dict[str, List[AgendaIssue]] = {}
    for issue in issues:
        if _is_pull_request(issue):
            continue
        repository = repository_from_url(issue["repository_url"])
        grouped.setdefault(repository, []).append(_to_agenda_issue(issue))

    return [
        AgendaEntry(repository=repository, issues=repo_issues)
        for repository, repo_issues in grouped.items()
    ]


def render_agenda_markdown(agenda: Iterable[AgendaEntry]) -> str:
    """
    Render the agenda as markdown: one `### owner/repo` heading per entry
    followed by `* title [#n](url)` bullets. Square brackets in titles are
    escaped so they cannot break the link syntax.
    """
    sections: List[str] = []
    for entry in agenda:
        if not entry.issues:
            continue
        lines = [f"### {entry.repository}", ""]
        for issue in entry.issues:
            title = _LINK_BRACKETS.sub(r"\\\1", issue.title)
            lines.append(f"* {title} [#{issue.number}]({issue.url})")
        sections.append("\n".join(lines))
    return "\n\n".join(sections).strip()


class AgendaAggregator:
    """
    Collects open agenda issues for a meeting group from GitHub.

    Two equivalent strategies:
    - "repositories": list the org's public repositories and query each one
      concurrently (at most `max_concurrency` requests in flight), keeping
      enumeration order.
    - "search": one org-wide issue search, grouped client-side.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        strategy: str = "repositories",
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        if strategy not in AGENDA_STRATEGIES:
            raise ValueError(f"Unknown agenda strategy: {strategy!r}")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.github = github_client
        self.strategy = strategy
        self.max_concurrency = max_concurrency

    async def get_agenda_issues(self, org: str, agenda_label: str) -> List[AgendaEntry]:
        if self.strategy == "search":
            agenda = await self._search_agenda(org, agenda_label)
        else:
            agenda = await self._repository_agenda(org, agenda_label)

        logger.info(
            "Found %d agenda issues across %d repositories for label %s",
            sum(len(entry.issues) for entry in agenda),
            len(agenda),
            agenda_label,
        )
        return agenda

    async def _repository_agenda(self, org: str, agenda_label: str) -> List[AgendaEntry]:
        repos = await self.github.list_public_repos(org)
        limit = asyncio.Semaphore(self.max_concurrency)

        async def _open_issues(repo_name: str) -> List[Dict[str, Any]]:
            async with limit:
                return await self.github.list_open_issues(org, repo_name, agenda_label)

        per_repo = await asyncio.gather(*(_open_issues(repo["name"]) for repo in repos))

        agenda: List[AgendaEntry] = []
        for repo, issues in zip(repos, per_repo):
            agenda_issues = [
                _to_agenda_issue(issue) for issue in issues if not _is_pull_request(issue)
            ]
            if agenda_issues:
                agenda.append(
                    AgendaEntry(repository=f"{org}/{repo['name']}", issues=agenda_issues)
                )
        return agenda

    async def _search_agenda(self, org: str, agenda_label: str) -> List[AgendaEntry]:
        issues = await self.github.search_issues(
            f"is:open label:{agenda_label} org:{org}"
        )
        return group_issues_by_repository(issues)
