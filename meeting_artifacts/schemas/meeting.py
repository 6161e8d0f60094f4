# meeting_artifacts/schemas/meeting.py
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class MeetingGroupConfig(BaseModel):
    """
    Static descriptor for one recurring meeting series.

    Built once per run from the group's template files and never written
    back. `host` and `display_name` stay None when the group does not set
    them, so callers can tell an unset field from an explicit empty string.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., description="Stable identifier.", examples=["tsc"])
    display_name: str | None = Field(
        None,
        description="Group name used in titles (GROUP_NAME property).",
        examples=["TSC"],
    )
    host_name: str | None = Field(
        None,
        description="Hosting organisation used in titles (HOST property).",
        examples=["Node.js"],
    )
    calendar_filter: str = Field(
        ...,
        description="Substring that selects this group's events in a shared feed.",
        examples=["Node.js TSC Meeting"],
    )
    calendar_source: str = Field(
        ...,
        description="iCal feed URL or Google calendar id to query.",
    )
    code_host_org: str = Field(..., description="Organisation owning the issue repository.")
    code_host_repo: str = Field(..., description="Repository receiving the meeting issue.")
    agenda_label: str = Field(
        ...,
        description="Label selecting candidate agenda issues.",
        examples=["tsc-agenda"],
    )
    issue_label: str | None = Field(None, description="Label applied to the created issue.")
    invited_list: str = Field("", description="Invitee block inserted verbatim.")
    observer_list: str = Field("", description="Observer block inserted verbatim.")
    joining_instructions: str | None = None
    notes_team_context: str | None = Field(
        None,
        description="HackMD team path overriding the process-wide setting.",
    )
    minutes_template_path: Path | None = Field(
        None,
        description="Minutes template: minutes_base_{group} or the shared minutes_base.md.",
    )


class CalendarEvent(BaseModel):
    """
    A calendar entry as returned by a calendar source.

    Recurring entries carry the raw RRULE value; one-off entries leave it
    None and are never considered when resolving the next meeting.
    """

    summary: str | None = None
    description: str | None = None
    start: datetime | None = Field(
        None,
        description="Timezone-aware DTSTART of the event (or series).",
    )
    timezone: str | None = Field(
        None,
        description="IANA name of the zone the recurrence is evaluated in.",
        examples=["America/New_York"],
    )
    rrule: str | None = Field(
        None,
        description="Recurrence rule value without the 'RRULE:' prefix.",
        examples=["FREQ=WEEKLY;BYDAY=WE"],
    )
    exdates: list[datetime] = Field(
        default_factory=list,
        description="Occurrences excluded from the series.",
    )
