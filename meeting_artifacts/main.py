# meeting_artifacts/main.py
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from meeting_artifacts.core.config import ConfigurationError, Settings, get_settings
from meeting_artifacts.core.meeting_groups import ISSUE_TEMPLATE_NAME, load_meeting_group
from meeting_artifacts.schemas.artifact import RunStatus, RunSummary
from meeting_artifacts.services.agenda import AGENDA_STRATEGIES, AgendaAggregator
from meeting_artifacts.services.api_client import ApiClientError
from meeting_artifacts.services.artifact_composer import ArtifactComposer
from meeting_artifacts.services.calendar_sources import create_calendar_source
from meeting_artifacts.services.github_client import GitHubClient
from meeting_artifacts.services.hackmd_client import HackMDClient
from meeting_artifacts.services.meeting_resolver import MeetingDateResolver
from meeting_artifacts.services.meeting_run import MeetingArtifactsRun
from meeting_artifacts.services.templates import load_template

logger = logging.getLogger("meeting_artifacts.main")


def build_parser(default_group: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-meeting-artifacts",
        description=(
            "Create or update the GitHub issue and HackMD minutes document "
            "for the next meeting of a group."
        ),
    )
    parser.add_argument("meeting_group", nargs="?", default=default_group, help="Meeting group id")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show output without creating or updating anything",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip the lookup of existing artifacts and always create new ones",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every upstream HTTP request",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs one INFO line per request.
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


def create_run(
    settings: Settings,
    group_id: str,
    *,
    dry_run: bool = False,
    force: bool = False,
) -> MeetingArtifactsRun:
    """
    Application factory: load the group's configuration and wire every
    collaborator of a run from `settings`.
    """
    if not dry_run:
        settings.require("GITHUB_TOKEN", "HACKMD_API_TOKEN")
    if settings.AGENDA_STRATEGY not in AGENDA_STRATEGIES:
        raise ConfigurationError(f"Unknown AGENDA_STRATEGY: {settings.AGENDA_STRATEGY!r}")

    templates_dir = settings.MEETINGS_CONFIG_DIR
    group = load_meeting_group(group_id, templates_dir, settings.DEFAULT_GITHUB_ORG)

    timeout = settings.HTTP_TIMEOUT_SECONDS
    github = GitHubClient(settings.GITHUB_TOKEN, timeout_seconds=timeout)

    notes_host: Optional[HackMDClient] = None
    if settings.HACKMD_API_TOKEN:
        notes_host = HackMDClient(
            settings.HACKMD_API_TOKEN,
            team_path=group.notes_team_context or settings.HACKMD_TEAM_NAME,
            timeout_seconds=timeout,
        )

    calendar = create_calendar_source(
        settings.CALENDAR_PROVIDER, settings.GOOGLE_API_KEY, timeout_seconds=timeout
    )

    composer = ArtifactComposer(
        issue_template=load_template(templates_dir / ISSUE_TEMPLATE_NAME),
        minutes_template=load_template(group.minutes_template_path),
        default_host=settings.DEFAULT_HOST,
    )

    return MeetingArtifactsRun(
        group,
        resolver=MeetingDateResolver(calendar),
        agenda=AgendaAggregator(github, strategy=settings.AGENDA_STRATEGY),
        composer=composer,
        github=github,
        notes_host=notes_host,
        dry_run=dry_run,
        force=force,
        output_dir=settings.MEETINGS_OUTPUT_DIR,
    )


def report(summary: RunSummary) -> None:
    if summary.status == RunStatus.NO_MEETING:
        print(f"No meeting found for {summary.group_id} this week; nothing to do.")
        return
    if summary.status == RunStatus.DRY_RUN:
        print("Dry run mode: no data was created or updated.")
        return

    verb = {
        RunStatus.CREATED: "Created",
        RunStatus.UPDATED: "Updated",
        RunStatus.UNCHANGED: "Existing (unchanged)",
    }[summary.status]
    print(f"{verb} GitHub issue: {summary.issue.url}")
    print(f"HackMD document: {summary.notes.url}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point. Returns the process exit code: 0 on success or when no
    meeting falls in this week's window, 1 on any failure.
    """
    try:
        settings = get_settings()
    except ValueError as exc:
        # pydantic ValidationError subclasses ValueError.
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    args = build_parser(settings.DEFAULT_MEETING_GROUP).parse_args(argv)
    configure_logging(args.verbose)

    try:
        meeting_run = create_run(
            settings, args.meeting_group, dry_run=args.dry_run, force=args.force
        )
        summary = asyncio.run(meeting_run.run())
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except ApiClientError as exc:
        logger.error("Upstream request failed: %s", exc)
        return 1

    report(summary)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run()
