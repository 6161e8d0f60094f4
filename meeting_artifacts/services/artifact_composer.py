# meeting_artifacts/services/artifact_composer.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, quote_plus
from zoneinfo import ZoneInfo

from meeting_artifacts.schemas.agenda import AgendaEntry
from meeting_artifacts.schemas.meeting import MeetingGroupConfig
from meeting_artifacts.services.agenda import render_agenda_markdown
from meeting_artifacts.services.templates import substitute

NO_AGENDA_PLACEHOLDER = "*No agenda items found.*"

# (label, IANA zone) rows of the timezone table, in display order.
RELEVANT_TIMEZONES: Sequence[Tuple[str, str]] = (
    ("US / Pacific", "America/Los_Angeles"),
    ("US / Mountain", "America/Denver"),
    ("US / Central", "America/Chicago"),
    ("US / Eastern", "America/New_York"),
    ("EU / Western", "Europe/London"),
    ("EU / Central", "Europe/Amsterdam"),
    ("EU / Eastern", "Europe/Helsinki"),
    ("Moscow", "Europe/Moscow"),
    ("Chennai", "Asia/Kolkata"),
    ("Hangzhou", "Asia/Shanghai"),
    ("Tokyo", "Asia/Tokyo"),
    ("Sydney", "Australia/Sydney"),
)

TIMEZONE_LABEL_WIDTH = 13


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_meeting_time(value: datetime, tz: str = "UTC") -> str:
    """
    "Wed, Jan 15, 2025, 10:30 AM" in the given zone.
    """
    local = _utc(value).astimezone(ZoneInfo(tz))
    return local.strftime("%a, %b %d, %Y, %I:%M %p")


def format_timezone_table(value: datetime) -> str:
    return "\n".join(
        f"{label.ljust(TIMEZONE_LABEL_WIDTH)} | {format_meeting_time(value, tz)}"
        for label, tz in RELEVANT_TIMEZONES
    )


def generate_meeting_title(
    group: MeetingGroupConfig,
    meeting_date: datetime,
    default_host: str,
) -> str:
    """
    "{host} {group name} Meeting {YYYY-MM-DD}" using the UTC date.

    Unset host/group name fall back to `default_host`/the group id; an
    explicit empty string is kept as-is.
    """
    host = group.host_name if group.host_name is not None else default_host
    name = group.display_name if group.display_name is not None else group.group_id
    return f"{host} {name} Meeting {_utc(meeting_date).date().isoformat()}"


def time_and_date_link(meeting_date: datetime, title: str) -> str:
    """
    timeanddate.com world-clock page for the meeting instant.
    """
    iso = _utc(meeting_date).strftime("%Y%m%dT%H%M%S")
    return (
        "https://www.timeanddate.com/worldclock/fixedtime.html"
        f"?msg={quote_plus(title)}&iso={iso}"
    )


def wolfram_alpha_link(meeting_date: datetime) -> str:
    """
    Wolfram|Alpha query converting the UTC meeting time to local time.
    """
    utc = _utc(meeting_date)
    utc_time = utc.strftime("%I:%M %p")
    utc_date = f"{utc:%b} {utc.day}, {utc.year}"
    return (
        "https://www.wolframalpha.com/input/"
        f"?i={quote(utc_time, safe='')}+UTC%2C+{quote(utc_date, safe='')}+in+local+time"
    )


class ArtifactComposer:
    """
    Renders the meeting issue body and the minutes document body.

    Both templates use $PLACEHOLDER$ tokens; see `issue_variables` for the
    full list. The minutes body gets the GitHub issue link only on the
    second pass, once the issue exists.
    """

    def __init__(self, issue_template: str, minutes_template: str, default_host: str):
        self.issue_template = issue_template
        self.minutes_template = minutes_template
        self.default_host = default_host

    def title(self, group: MeetingGroupConfig, meeting_date: datetime) -> str:
        return generate_meeting_title(group, meeting_date, self.default_host)

    @staticmethod
    def agenda_content(agenda: List[AgendaEntry]) -> str:
        return render_agenda_markdown(agenda) or NO_AGENDA_PLACEHOLDER

    def issue_variables(
        self,
        group: MeetingGroupConfig,
        meeting_date: datetime,
        agenda: List[AgendaEntry],
        notes_link: Optional[str],
    ) -> Dict[str, Optional[str]]:
        title = self.title(group, meeting_date)
        return {
            "TITLE": title,
            "GROUP_NAME": group.display_name if group.display_name is not None else group.group_id,
            "HOST": group.host_name if group.host_name is not None else self.default_host,
            "UTC_TIME": format_meeting_time(meeting_date),
            "TIMEZONE_TABLE": format_timezone_table(meeting_date),
            "TIME_AND_DATE_LINK": time_and_date_link(meeting_date, title),
            "WOLFRAM_ALPHA_LINK": wolfram_alpha_link(meeting_date),
            "AGENDA_LABEL": group.agenda_label,
            "GITHUB_ORG": group.code_host_org,
            "AGENDA_CONTENT": self.agenda_content(agenda),
            "INVITED": group.invited_list,
            "JOINING_INSTRUCTIONS": group.joining_instructions,
            "MINUTES_DOC": notes_link,
            "OBSERVERS": group.observer_list,
        }

    def compose_issue(
        self,
        group: MeetingGroupConfig,
        meeting_date: datetime,
        agenda: List[AgendaEntry],
        notes_link: Optional[str],
    ) -> str:
        return substitute(
            self.issue_template,
            self.issue_variables(group, meeting_date, agenda, notes_link),
        )

    def compose_notes(
        self,
        group: MeetingGroupConfig,
        title: str,
        agenda: List[AgendaEntry],
        notes_link: Optional[str],
        issue_link: Optional[str],
    ) -> str:
        return substitute(
            self.minutes_template,
            {
                "TITLE": title,
                "AGENDA_CONTENT": self.agenda_content(agenda),
                "INVITED": group.invited_list,
                "OBSERVERS": group.observer_list,
                "MINUTES_DOC": notes_link,
                "GITHUB_ISSUE": issue_link,
            },
        )
