# meeting_artifacts/core/config.py
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


class ConfigurationError(RuntimeError):
    """
    Raised when a required credential, template file or meeting property is
    missing. Always fatal for the run.
    """


class Settings(BaseSettings):
    """
    Process-level configuration.

    Values are loaded from environment variables (or a local .env file) once
    at startup and then passed explicitly to the components that need them:
    - Credentials for GitHub, HackMD and Google Calendar
    - Template and output directories
    - Defaults used when a meeting group leaves a field unset
    """

    APP_NAME: str = "Meeting Artifacts"

    GITHUB_TOKEN: str | None = Field(
        default=None,
        description="Personal access token used for the GitHub REST API.",
    )

    HACKMD_API_TOKEN: str | None = Field(
        default=None,
        description="HackMD API token used to create and update meeting notes.",
    )
    HACKMD_TEAM_NAME: str | None = Field(
        default=None,
        description=(
            "Optional HackMD team path. Notes are created in the team workspace "
            "instead of the token owner's personal workspace."
        ),
    )

    GOOGLE_API_KEY: str | None = Field(
        default=None,
        description="Google API key, required when CALENDAR_PROVIDER=google.",
    )
    CALENDAR_PROVIDER: str = Field(
        default="ical",
        description="Calendar source: 'ical' (public feed) or 'google' (Calendar API).",
    )

    MEETINGS_CONFIG_DIR: Path = Field(
        default=BUNDLED_TEMPLATES_DIR,
        description="Directory holding meeting_issue.md and the per-group template files.",
    )
    MEETINGS_OUTPUT_DIR: Path | None = Field(
        default=None,
        description="When set, composed issue and minutes bodies are also written here.",
    )

    DEFAULT_MEETING_GROUP: str = "tsc"
    DEFAULT_GITHUB_ORG: str = "nodejs"
    DEFAULT_HOST: str = "Node.js"

    AGENDA_STRATEGY: str = Field(
        default="repositories",
        description=(
            "'repositories' queries every public repository of the org, "
            "'search' issues a single organization-wide search."
        ),
    )

    HTTP_TIMEOUT_SECONDS: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    def require(self, *names: str) -> None:
        """
        Raise ConfigurationError naming every listed setting that is empty.
        """
        missing = [name for name in names if not getattr(self, name, None)]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for process settings.

    Only the CLI entry point calls this; everything else receives the values
    it needs as arguments.
    """
    return Settings()
