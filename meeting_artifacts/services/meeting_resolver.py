# meeting_artifacts/services/meeting_resolver.py
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.rrule import rrulestr

from meeting_artifacts.schemas.meeting import CalendarEvent, MeetingGroupConfig
from meeting_artifacts.services.calendar_sources import CalendarSource

logger = logging.getLogger("meeting_artifacts.meeting_resolver")

SEARCH_WINDOW = timedelta(days=7)

_FLOATING_UNTIL = re.compile(r"UNTIL=(\d{8}T\d{6})(?=;|$)")
_DATE_UNTIL = re.compile(r"UNTIL=(\d{8})(?=;|$)")


def get_week_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Search window for the next meeting: [today 00:00 UTC, +7 days).
    """
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + SEARCH_WINDOW


def matches_filter(event: CalendarEvent, calendar_filter: str) -> bool:
    """
    True when the event's summary (or, if it has none, its description)
    contains the filter text.
    """
    text = event.summary or event.description
    return bool(text) and calendar_filter in text


def _normalise_until(rule: str) -> str:
    # dateutil rejects a floating UNTIL once DTSTART is timezone-aware.
    rule = _FLOATING_UNTIL.sub(r"UNTIL=\1Z", rule)
    return _DATE_UNTIL.sub(r"UNTIL=\1T235959Z", rule)


def _event_zone(event: CalendarEvent):
    if event.timezone:
        try:
            return ZoneInfo(event.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using DTSTART offset", event.timezone)
    return event.start.tzinfo


def expand_occurrences(
    event: CalendarEvent,
    window_start: datetime,
    window_end: datetime,
) -> List[datetime]:
    """
    Occurrences of a recurring event inside [window_start, window_end), in
    ascending order and converted to UTC.

    The rule is evaluated in the event's own timezone so a weekly 10:00
    meeting stays at 10:00 local time across DST changes. EXDATEs are
    removed. Events without a rule or start produce nothing.
    """
    if not event.rrule or event.start is None:
        return []

    local_start = event.start.astimezone(_event_zone(event))
    try:
        ruleset = rrulestr(
            _normalise_until(event.rrule), dtstart=local_start, forceset=True
        )
    except (ValueError, TypeError) as exc:
        logger.warning("Skipping event %r with invalid RRULE: %s", event.summary, exc)
        return []

    for excluded in event.exdates:
        ruleset.exdate(excluded)

    return [
        occurrence.astimezone(timezone.utc)
        for occurrence in ruleset.between(window_start, window_end, inc=True)
        if occurrence < window_end
    ]


def resolve_next_meeting(
    events: Iterable[CalendarEvent],
    calendar_filter: str,
    window_start: datetime,
    window_end: datetime,
) -> Optional[datetime]:
    """
    Pick the next meeting date among `events`.

    Rules
    -----
    - Only recurring events whose summary/description contains the filter
      are considered.
    - Events are tried in input order; the first one with an occurrence in
      the window wins and its earliest occurrence is returned.
    - None means no meeting this window, which is not an error.
    """
    for event in events:
        if not event.rrule or not matches_filter(event, calendar_filter):
            continue
        occurrences = expand_occurrences(event, window_start, window_end)
        if occurrences:
            return occurrences[0]
    return None


class MeetingDateResolver:
    """
    Resolves the next meeting date of a group from its calendar source.
    """

    def __init__(self, calendar_source: CalendarSource):
        self.calendar = calendar_source

    async def resolve(
        self,
        group: MeetingGroupConfig,
        now: Optional[datetime] = None,
    ) -> Optional[datetime]:
        window_start, window_end = get_week_bounds(now)
        events = await self.calendar.list_events(
            group.calendar_source,
            window_start,
            window_end,
            query=group.calendar_filter,
        )
        meeting_date = resolve_next_meeting(
            events, group.calendar_filter, window_start, window_end
        )

        if meeting_date is None:
            logger.info(
                "No %r meeting between %s and %s; expected for bi-weekly or "
                "irregular schedules.",
                group.calendar_filter,
                window_start.date().isoformat(),
                window_end.date().isoformat(),
            )
        return meeting_date
