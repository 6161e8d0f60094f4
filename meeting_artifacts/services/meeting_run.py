# meeting_artifacts/services/meeting_run.py
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from meeting_artifacts.schemas.agenda import AgendaEntry
from meeting_artifacts.schemas.artifact import (
    ArtifactAction,
    ExternalArtifactHandle,
    RunStatus,
    RunSummary,
)
from meeting_artifacts.schemas.meeting import MeetingGroupConfig
from meeting_artifacts.services.agenda import AgendaAggregator
from meeting_artifacts.services.artifact_composer import ArtifactComposer
from meeting_artifacts.services.github_client import GitHubClient
from meeting_artifacts.services.hackmd_client import (
    DEFAULT_NOTE_PERMISSIONS,
    HackMDClient,
    note_link,
)
from meeting_artifacts.services.meeting_resolver import MeetingDateResolver

logger = logging.getLogger("meeting_artifacts.meeting_run")

DRY_RUN_NOTES_URL = "https://hackmd.io/dry-run"
DRY_RUN_ISSUE_URL = "https://github.com/dry-run/issue"

_ISSUE_STATUS = {
    ArtifactAction.CREATED: RunStatus.CREATED,
    ArtifactAction.UPDATED: RunStatus.UPDATED,
    ArtifactAction.UNCHANGED: RunStatus.UNCHANGED,
}


class MeetingArtifactsRun:
    """
    Creates or updates the meeting issue and minutes document of one group.

    Steps
    -----
    1) Resolve the next meeting date; stop cleanly when there is none.
    2) Collect agenda issues.
    3) Find (or create, empty) the minutes document to obtain its link.
    4) Compose the issue with the minutes link; create it, update it in
       place, or leave it alone when the body is unchanged.
    5) Compose the minutes with the issue link and write them, unless an
       existing note already holds exactly that content.

    With `dry_run` every write is replaced by a printed description. With
    `force` existing artifacts are not looked up; new ones are always made.
    """

    def __init__(
        self,
        group: MeetingGroupConfig,
        *,
        resolver: MeetingDateResolver,
        agenda: AgendaAggregator,
        composer: ArtifactComposer,
        github: GitHubClient,
        notes_host: Optional[HackMDClient],
        dry_run: bool = False,
        force: bool = False,
        output_dir: Optional[Path] = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        if notes_host is None and not dry_run:
            raise ValueError("notes_host is required unless dry_run is set")
        self.group = group
        self.resolver = resolver
        self.agenda = agenda
        self.composer = composer
        self.github = github
        self.notes_host = notes_host
        self.dry_run = dry_run
        self.force = force
        self.output_dir = output_dir
        self.echo = echo

    async def reconcile_notes(self, title: str) -> ExternalArtifactHandle:
        """
        Return the minutes document for `title`, creating an empty one when
        none exists (or when forcing).
        """
        if self.dry_run:
            self.echo(f"[dry-run] Would create HackMD meeting notes document: {title}")
            return ExternalArtifactHandle(
                id="dry-run", url=DRY_RUN_NOTES_URL, action=ArtifactAction.DRY_RUN
            )

        if not self.force:
            existing = await self.notes_host.find_note_by_title(title)
            if existing is not None:
                logger.info("Reusing HackMD note %s", existing["id"])
                return ExternalArtifactHandle(
                    id=existing["id"], url=note_link(existing), action=ArtifactAction.FOUND
                )

        note = await self.notes_host.create_note(title, "", DEFAULT_NOTE_PERMISSIONS)
        return ExternalArtifactHandle(
            id=note["id"], url=note_link(note), action=ArtifactAction.CREATED
        )

    async def reconcile_issue(self, title: str, body: str) -> ExternalArtifactHandle:
        """
        Create-or-update the meeting issue.

        An open issue with exactly this title is updated in place, or left
        untouched when its body already matches. Forcing skips the lookup.
        """
        org, repo = self.group.code_host_org, self.group.code_host_repo

        if self.dry_run:
            self.echo(f"[dry-run] Would create GitHub issue in {org}/{repo} with title: {title}")
            self.echo(f"[dry-run] Would use the following content:\n{body}")
            return ExternalArtifactHandle(
                id="dry-run", url=DRY_RUN_ISSUE_URL, action=ArtifactAction.DRY_RUN
            )

        if not self.force:
            existing = await self.github.find_issue_by_title(org, repo, title)
            if existing is not None:
                handle = ExternalArtifactHandle(
                    id=str(existing["number"]),
                    url=existing["html_url"],
                    action=ArtifactAction.UNCHANGED,
                )
                if (existing.get("body") or "") == body:
                    logger.info("Issue %s already up to date", handle.url)
                    return handle
                await self.github.update_issue(org, repo, existing["number"], body)
                return handle.model_copy(update={"action": ArtifactAction.UPDATED})

        labels = [self.group.issue_label] if self.group.issue_label else None
        issue = await self.github.create_issue(org, repo, title, body, labels=labels)
        return ExternalArtifactHandle(
            id=str(issue["number"]), url=issue["html_url"], action=ArtifactAction.CREATED
        )

    async def update_notes(self, notes: ExternalArtifactHandle, content: str) -> None:
        if self.dry_run:
            self.echo("[dry-run] Would update HackMD document with self-referencing link.")
            self.echo(f"[dry-run] Would use the following notes content:\n{content}")
            return
        if notes.action == ArtifactAction.FOUND:
            current = await self.notes_host.get_note(notes.id)
            if (current.get("content") or "") == content:
                logger.info("HackMD note %s already up to date", notes.id)
                return
        await self.notes_host.update_note(notes.id, content)

    def _write_output(self, title: str, meeting_date: datetime, issue_body: str, notes_body: str) -> None:
        if self.output_dir is None:
            return
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{self.group.group_id}-{meeting_date.date().isoformat()}"
        (self.output_dir / f"{stem}-issue.md").write_text(issue_body, encoding="utf-8")
        (self.output_dir / f"{stem}-minutes.md").write_text(notes_body, encoding="utf-8")
        logger.info("Wrote %s artifacts to %s", title, self.output_dir)

    async def run(self, now: Optional[datetime] = None) -> RunSummary:
        group = self.group

        meeting_date = await self.resolver.resolve(group, now=now)
        if meeting_date is None:
            return RunSummary(group_id=group.group_id, status=RunStatus.NO_MEETING)

        title = self.composer.title(group, meeting_date)
        logger.info("Next meeting: %s", title)

        agenda: List[AgendaEntry] = await self.agenda.get_agenda_issues(
            group.code_host_org, group.agenda_label
        )

        notes = await self.reconcile_notes(title)
        issue_body = self.composer.compose_issue(group, meeting_date, agenda, notes.url)
        issue = await self.reconcile_issue(title, issue_body)

        notes_body = self.composer.compose_notes(group, title, agenda, notes.url, issue.url)
        await self.update_notes(notes, notes_body)

        self._write_output(title, meeting_date, issue_body, notes_body)

        status = RunStatus.DRY_RUN if self.dry_run else _ISSUE_STATUS[issue.action]
        return RunSummary(
            group_id=group.group_id,
            status=status,
            title=title,
            meeting_date=meeting_date,
            issue=issue,
            notes=notes,
        )
