from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from meeting_artifacts.schemas.artifact import ArtifactAction, RunStatus
from meeting_artifacts.services.agenda import AgendaAggregator
from meeting_artifacts.services.artifact_composer import ArtifactComposer
from meeting_artifacts.services.hackmd_client import HackMDClientError
from meeting_artifacts.services.meeting_run import (
    DRY_RUN_ISSUE_URL,
    DRY_RUN_NOTES_URL,
    MeetingArtifactsRun,
)

MEETING = datetime(2025, 1, 16, 15, 0, tzinfo=timezone.utc)
TITLE = "Node.js TSC Meeting 2025-01-16"

ISSUE_TEMPLATE = "# $TITLE$\nMinutes: $MINUTES_DOC$\n\n$AGENDA_CONTENT$"
MINUTES_TEMPLATE = "# $TITLE$\nIssue: $GITHUB_ISSUE$\nMinutes: $MINUTES_DOC$\n\n$AGENDA_CONTENT$"


class _FakeResolver:
    def __init__(self, meeting_date: Optional[datetime]):
        self.meeting_date = meeting_date

    async def resolve(self, group, now=None):
        return self.meeting_date


class _FakeGitHub:
    """
    In-memory issue tracker exposing the GitHubClient methods a run uses.
    """

    def __init__(self):
        self.agenda_issues: List[Dict[str, Any]] = [
            {"number": 10, "title": "Release plan", "html_url": "https://github.com/nodejs/node/issues/10"}
        ]
        self.issues: List[Dict[str, Any]] = []
        self.created: List[Dict[str, Any]] = []
        self.updated: List[Dict[str, Any]] = []

    async def list_public_repos(self, org):
        return [{"name": "node"}]

    async def list_open_issues(self, owner, repo, label):
        return list(self.agenda_issues)

    async def find_issue_by_title(self, owner, repo, title):
        return next((issue for issue in self.issues if issue["title"] == title), None)

    async def create_issue(self, owner, repo, title, body, labels=None):
        number = len(self.issues) + 1
        issue = {
            "number": number,
            "title": title,
            "body": body,
            "labels": labels,
            "html_url": f"https://github.com/{owner}/{repo}/issues/{number}",
        }
        self.issues.append(issue)
        self.created.append(issue)
        return issue

    async def update_issue(self, owner, repo, number, body):
        issue = next(issue for issue in self.issues if issue["number"] == number)
        issue["body"] = body
        self.updated.append(issue)
        return issue


class _FakeHackMD:
    def __init__(self):
        self.notes: List[Dict[str, Any]] = []
        self.created: List[Dict[str, Any]] = []
        self.updates: List[tuple] = []
        self.reads: List[str] = []

    async def find_note_by_title(self, title):
        return next((note for note in self.notes if note["title"] == title), None)

    async def create_note(self, title, content, permissions=None):
        note_id = f"note{len(self.notes) + 1}"
        note = {
            "id": note_id,
            "title": title,
            "content": content,
            "publishLink": f"https://hackmd.io/{note_id}",
            "permissions": permissions,
        }
        self.notes.append(note)
        self.created.append(note)
        return note

    async def get_note(self, note_id):
        self.reads.append(note_id)
        return dict(next(note for note in self.notes if note["id"] == note_id))

    async def update_note(self, note_id, content):
        note = next(note for note in self.notes if note["id"] == note_id)
        note["content"] = content
        self.updates.append((note_id, content))
        return {}


def _run(
    group,
    github,
    hackmd,
    *,
    meeting_date=MEETING,
    minutes_template=MINUTES_TEMPLATE,
    **kwargs,
) -> MeetingArtifactsRun:
    return MeetingArtifactsRun(
        group,
        resolver=_FakeResolver(meeting_date),
        agenda=AgendaAggregator(github),
        composer=ArtifactComposer(ISSUE_TEMPLATE, minutes_template, default_host="Node.js"),
        github=github,
        notes_host=hackmd,
        **kwargs,
    )


def test_notes_host_required_outside_dry_run(group):
    with pytest.raises(ValueError):
        _run(group, _FakeGitHub(), None)


@pytest.mark.asyncio
async def test_no_meeting_makes_no_calls(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()

    summary = await _run(group, github, hackmd, meeting_date=None).run()

    assert summary.status == RunStatus.NO_MEETING
    assert summary.issue is None
    assert github.created == [] and hackmd.created == []


@pytest.mark.asyncio
async def test_first_run_creates_notes_then_issue(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()

    summary = await _run(group, github, hackmd).run()

    assert summary.status == RunStatus.CREATED
    assert summary.title == TITLE
    assert summary.meeting_date == MEETING

    note = hackmd.created[0]
    assert note["title"] == TITLE
    assert note["content"] == (
        f"# {TITLE}\n"
        "Issue: https://github.com/nodejs/TSC/issues/1\n"
        "Minutes: https://hackmd.io/note1\n\n"
        "### nodejs/node\n\n"
        "* Release plan [#10](https://github.com/nodejs/node/issues/10)"
    )
    assert note["permissions"]["readPermission"] == "guest"

    issue = github.created[0]
    assert issue["title"] == TITLE
    assert issue["labels"] == ["meeting"]
    assert "Minutes: https://hackmd.io/note1" in issue["body"]
    assert summary.issue.url == issue["html_url"]
    assert summary.notes.url == "https://hackmd.io/note1"


@pytest.mark.asyncio
async def test_rerun_with_same_content_is_idempotent(group):
    """
    A second run for the same meeting must neither create nor update
    anything: the issue body and the minutes are already current. The
    existing note is read back to confirm that.
    """
    github, hackmd = _FakeGitHub(), _FakeHackMD()

    await _run(group, github, hackmd).run()
    summary = await _run(group, github, hackmd).run()

    assert summary.status == RunStatus.UNCHANGED
    assert summary.issue.action == ArtifactAction.UNCHANGED
    assert summary.notes.action == ArtifactAction.FOUND
    assert len(github.created) == 1
    assert github.updated == []
    assert len(hackmd.created) == 1
    assert len(hackmd.updates) == 1
    assert hackmd.reads == ["note1"]


class _FlakyHackMD(_FakeHackMD):
    """
    Notes host whose first content update fails, like a HackMD outage
    right after the issue was published.
    """

    def __init__(self):
        super().__init__()
        self.fail_next_update = True

    async def update_note(self, note_id, content):
        if self.fail_next_update:
            self.fail_next_update = False
            raise HackMDClientError("HackMD PATCH failed (status=502)", status_code=502)
        return await super().update_note(note_id, content)


@pytest.mark.asyncio
async def test_rerun_fills_note_left_empty_by_failed_update(group):
    github, hackmd = _FakeGitHub(), _FlakyHackMD()

    with pytest.raises(HackMDClientError):
        await _run(group, github, hackmd).run()
    assert hackmd.notes[0]["content"] == ""

    summary = await _run(group, github, hackmd).run()

    assert summary.status == RunStatus.UNCHANGED
    assert summary.notes.action == ArtifactAction.FOUND
    assert hackmd.notes[0]["content"].startswith(
        f"# {TITLE}\nIssue: https://github.com/nodejs/TSC/issues/1\n"
    )
    assert len(hackmd.created) == 1
    assert len(github.created) == 1


@pytest.mark.asyncio
async def test_rerun_applies_changed_minutes_template(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()
    await _run(group, github, hackmd).run()

    summary = await _run(
        group, github, hackmd, minutes_template=MINUTES_TEMPLATE + "\n\n## Action items\n"
    ).run()

    assert summary.status == RunStatus.UNCHANGED
    assert hackmd.notes[0]["content"].endswith("## Action items\n")
    assert len(hackmd.updates) == 2
    assert len(hackmd.created) == 1


@pytest.mark.asyncio
async def test_rerun_with_new_agenda_updates_in_place(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()
    await _run(group, github, hackmd).run()

    github.agenda_issues.append(
        {"number": 11, "title": "Security release", "html_url": "https://github.com/nodejs/node/issues/11"}
    )
    summary = await _run(group, github, hackmd).run()

    assert summary.status == RunStatus.UPDATED
    assert len(github.created) == 1
    assert len(github.updated) == 1
    assert "Security release" in github.issues[0]["body"]
    assert "Security release" in hackmd.notes[0]["content"]
    assert len(hackmd.created) == 1


@pytest.mark.asyncio
async def test_force_always_creates_new_artifacts(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()
    await _run(group, github, hackmd).run()

    summary = await _run(group, github, hackmd, force=True).run()

    assert summary.status == RunStatus.CREATED
    assert len(github.created) == 2
    assert len(hackmd.created) == 2
    assert github.updated == []


@pytest.mark.asyncio
async def test_issue_without_label(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()
    unlabelled = group.model_copy(update={"issue_label": None})

    await _run(unlabelled, github, hackmd).run()

    assert github.created[0]["labels"] is None


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(group):
    github, hackmd = _FakeGitHub(), _FakeHackMD()
    echoed: List[str] = []

    summary = await _run(group, github, None, dry_run=True, echo=echoed.append).run()

    assert summary.status == RunStatus.DRY_RUN
    assert summary.issue.url == DRY_RUN_ISSUE_URL
    assert summary.notes.url == DRY_RUN_NOTES_URL
    assert github.created == [] and github.updated == []
    assert hackmd.created == []

    output = "\n".join(echoed)
    assert f"with title: {TITLE}" in output
    assert f"Minutes: {DRY_RUN_NOTES_URL}" in output
    assert f"Issue: {DRY_RUN_ISSUE_URL}" in output


@pytest.mark.asyncio
async def test_output_dir_receives_both_bodies(group, tmp_path):
    github, hackmd = _FakeGitHub(), _FakeHackMD()
    output_dir = tmp_path / "out"

    await _run(group, github, hackmd, output_dir=output_dir).run()

    issue_file = output_dir / "tsc-2025-01-16-issue.md"
    minutes_file = output_dir / "tsc-2025-01-16-minutes.md"
    assert issue_file.read_text(encoding="utf-8") == github.issues[0]["body"]
    assert minutes_file.read_text(encoding="utf-8") == hackmd.notes[0]["content"]
