# meeting_artifacts/services/calendar_sources.py
from __future__ import annotations

import logging
from datetime import date as date_type, datetime, time, timezone
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote
from zoneinfo import ZoneInfo

import icalendar

from meeting_artifacts.core.config import ConfigurationError
from meeting_artifacts.schemas.meeting import CalendarEvent
from meeting_artifacts.services.api_client import ApiClient, ApiClientError

logger = logging.getLogger("meeting_artifacts.calendar")

GOOGLE_CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"


class CalendarClientError(ApiClientError):
    """
    Raised when a calendar feed cannot be fetched or parsed.
    """


class CalendarSource(Protocol):
    async def list_events(
        self,
        source: str,
        window_start: datetime,
        window_end: datetime,
        query: Optional[str] = None,
    ) -> List[CalendarEvent]:
        ...


def _as_aware(value: datetime | date_type, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Normalise a DTSTART-like value: all-day dates become midnight UTC and
    floating times are pinned to `tz` (or UTC).
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz or timezone.utc)
    return value


def _timezone_name(start: datetime, tzid: Optional[str]) -> str:
    if tzid:
        return str(tzid)
    key = getattr(start.tzinfo, "key", None)
    return key or "UTC"


def _parse_ical_datetime(value: str, tz: Optional[ZoneInfo]) -> datetime:
    if value.endswith("Z"):
        return datetime.strptime(value, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
    if "T" in value:
        return datetime.strptime(value, "%Y%m%dT%H%M%S").replace(tzinfo=tz or timezone.utc)
    return _as_aware(datetime.strptime(value, "%Y%m%d").date())


def _ical_exdates(component: Any) -> List[datetime]:
    raw = component.get("EXDATE")
    if raw is None:
        return []
    groups = raw if isinstance(raw, list) else [raw]
    return [_as_aware(item.dt) for group in groups for item in group.dts]


def parse_ical_events(text: str) -> List[CalendarEvent]:
    """
    Parse an iCalendar document into CalendarEvent values (VEVENTs only).
    """
    try:
        calendar = icalendar.Calendar.from_ical(text)
    except ValueError as exc:
        raise CalendarClientError(f"Invalid iCalendar feed: {exc}") from exc

    events: List[CalendarEvent] = []
    for component in calendar.walk("VEVENT"):
        dtstart = component.get("DTSTART")
        start = _as_aware(dtstart.dt) if dtstart is not None else None

        rrule = component.get("RRULE")
        if isinstance(rrule, list):
            rrule = rrule[0] if rrule else None

        summary = component.get("SUMMARY")
        description = component.get("DESCRIPTION")

        events.append(
            CalendarEvent(
                summary=str(summary) if summary is not None else None,
                description=str(description) if description is not None else None,
                start=start,
                timezone=(
                    _timezone_name(start, dtstart.params.get("TZID"))
                    if start is not None
                    else None
                ),
                rrule=rrule.to_ical().decode("utf-8") if rrule is not None else None,
                exdates=_ical_exdates(component),
            )
        )
    return events


def parse_google_event(item: Dict[str, Any]) -> CalendarEvent:
    """
    Convert one Google Calendar v3 event resource into a CalendarEvent.

    Recurring masters carry `recurrence` lines such as
    "RRULE:FREQ=WEEKLY;BYDAY=TH" and "EXDATE;TZID=Europe/London:20250102T170000".
    """
    start_raw = item.get("start") or {}
    tz_name = start_raw.get("timeZone")
    tz = ZoneInfo(tz_name) if tz_name else None

    start: Optional[datetime] = None
    if "dateTime" in start_raw:
        start = datetime.fromisoformat(start_raw["dateTime"].replace("Z", "+00:00"))
        start = _as_aware(start, tz)
        if tz is not None:
            start = start.astimezone(tz)
    elif "date" in start_raw:
        start = _as_aware(date_type.fromisoformat(start_raw["date"]))

    rrule: Optional[str] = None
    exdates: List[datetime] = []
    for line in item.get("recurrence") or []:
        head, _, value = line.partition(":")
        name, *params = head.split(";")
        if name == "RRULE" and rrule is None:
            rrule = value
        elif name == "EXDATE":
            tzid = next(
                (p.split("=", 1)[1] for p in params if p.startswith("TZID=")), None
            )
            ex_tz = ZoneInfo(tzid) if tzid else tz
            exdates.extend(_parse_ical_datetime(v, ex_tz) for v in value.split(","))

    return CalendarEvent(
        summary=item.get("summary"),
        description=item.get("description"),
        start=start,
        timezone=_timezone_name(start, tz_name) if start is not None else None,
        rrule=rrule,
        exdates=exdates,
    )


class ICalFeedSource(ApiClient):
    """
    Reads events from a public iCalendar (.ics) feed. The whole feed is
    returned; window filtering happens during recurrence expansion.
    """

    service_name = "iCal feed"
    error_class = CalendarClientError

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        super().__init__("", timeout_seconds=timeout_seconds, headers={"Accept": "text/calendar"})

    async def list_events(
        self,
        source: str,
        window_start: datetime,
        window_end: datetime,
        query: Optional[str] = None,
    ) -> List[CalendarEvent]:
        resp = await self.get_response(source)
        events = parse_ical_events(resp.text)
        logger.info("Fetched %d events from %s", len(events), source)
        return events


class GoogleCalendarSource(ApiClient):
    """
    Reads recurring event series from the Google Calendar v3 API using an
    API key (public calendars only).
    """

    service_name = "Google Calendar"
    error_class = CalendarClientError

    def __init__(
        self,
        api_key: str,
        base_url: str = GOOGLE_CALENDAR_API_URL,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        super().__init__(base_url, timeout_seconds=timeout_seconds)
        self._api_key = api_key

    @staticmethod
    def calendar_id(source: str) -> str:
        return source if "@" in source else f"{source}@group.calendar.google.com"

    async def list_events(
        self,
        source: str,
        window_start: datetime,
        window_end: datetime,
        query: Optional[str] = None,
    ) -> List[CalendarEvent]:
        params: Dict[str, Any] = {
            "key": self._api_key,
            "timeMin": window_start.isoformat(),
            "timeMax": window_end.isoformat(),
            # Series masters keep their RRULE; expansion happens locally.
            "singleEvents": "false",
        }
        if query:
            # Calendar search treats dots as word joiners.
            params["q"] = query.replace('"', "").replace(" ", ".")

        path = f"/calendars/{quote(self.calendar_id(source), safe='@')}/events"
        payload = await self.get_json(path, params=params)
        events = [parse_google_event(item) for item in payload.get("items", [])]
        logger.info("Fetched %d events from Google calendar %s", len(events), source)
        return events


def create_calendar_source(
    provider: str,
    api_key: Optional[str] = None,
    timeout_seconds: float = 10.0,
) -> CalendarSource:
    """
    Build the calendar source selected by CALENDAR_PROVIDER.
    """
    if provider == "ical":
        return ICalFeedSource(timeout_seconds=timeout_seconds)
    if provider == "google":
        if not api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required for CALENDAR_PROVIDER=google")
        return GoogleCalendarSource(api_key, timeout_seconds=timeout_seconds)
    raise ConfigurationError(f"Unknown CALENDAR_PROVIDER: {provider!r}")
