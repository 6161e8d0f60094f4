# meeting_artifacts/core/meeting_groups.py
from __future__ import annotations

from pathlib import Path

from meeting_artifacts.core.config import ConfigurationError
from meeting_artifacts.schemas.meeting import MeetingGroupConfig
from meeting_artifacts.services.templates import load_template, parse_properties

ISSUE_TEMPLATE_NAME = "meeting_issue.md"
DEFAULT_MINUTES_TEMPLATE_NAME = "minutes_base.md"


def meeting_base_path(templates_dir: Path, group_id: str) -> Path:
    return Path(templates_dir) / f"meeting_base_{group_id}"


def load_meeting_group(
    group_id: str,
    templates_dir: Path,
    default_org: str,
) -> MeetingGroupConfig:
    """
    Build the MeetingGroupConfig for `group_id` from its template files.

    Files read from `templates_dir`
    -------------------------------
    - meeting_base_{group}: KEY="value" properties (required)
    - invited_{group}, observers_{group}: free text, inserted verbatim
    - minutes_base_{group}: minutes template, falling back to minutes_base.md;
      only its path is kept

    Defaults
    --------
    - USER falls back to `default_org`.
    - AGENDA_TAG falls back to "{group}-agenda".
    - HOST and GROUP_NAME stay None when unset; an explicit empty value is
      kept as "".
    """
    templates_dir = Path(templates_dir)
    properties = parse_properties(
        load_template(meeting_base_path(templates_dir, group_id))
    )

    calendar_source = properties.get("ICAL_URL") or properties.get("CALENDAR_ID")
    missing = [
        name
        for name, value in (
            ("CALENDAR_FILTER", properties.get("CALENDAR_FILTER")),
            ("ICAL_URL or CALENDAR_ID", calendar_source),
            ("REPO", properties.get("REPO")),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"meeting_base_{group_id} is missing required properties: {', '.join(missing)}"
        )

    minutes_path = templates_dir / f"minutes_base_{group_id}"
    if not minutes_path.exists():
        minutes_path = templates_dir / DEFAULT_MINUTES_TEMPLATE_NAME
    if not minutes_path.exists():
        raise ConfigurationError(
            f"No minutes_base_{group_id} or {DEFAULT_MINUTES_TEMPLATE_NAME} in {templates_dir}"
        )

    return MeetingGroupConfig(
        group_id=group_id,
        display_name=properties.get("GROUP_NAME"),
        host_name=properties.get("HOST"),
        calendar_filter=properties["CALENDAR_FILTER"],
        calendar_source=calendar_source,
        code_host_org=properties.get("USER") or default_org,
        code_host_repo=properties["REPO"],
        agenda_label=properties.get("AGENDA_TAG") or f"{group_id}-agenda",
        issue_label=properties.get("ISSUE_LABEL") or None,
        invited_list=load_template(templates_dir / f"invited_{group_id}"),
        observer_list=load_template(templates_dir / f"observers_{group_id}"),
        joining_instructions=properties.get("JOINING_INSTRUCTIONS"),
        notes_team_context=properties.get("HACKMD_TEAM_NAME") or None,
        minutes_template_path=minutes_path,
    )
