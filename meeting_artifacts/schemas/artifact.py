# meeting_artifacts/schemas/artifact.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ArtifactAction(str, Enum):
    """
    What a reconciliation step did to an external artifact.
    """

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"
    FOUND = "FOUND"
    DRY_RUN = "DRY_RUN"


class RunStatus(str, Enum):
    """
    Overall outcome of one meeting run.
    """

    NO_MEETING = "NO_MEETING"
    DRY_RUN = "DRY_RUN"
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"


class ExternalArtifactHandle(BaseModel):
    """
    Identity of an issue or notes document in its hosting system.
    """

    id: str = Field(..., description="Issue number or note id.", examples=["42"])
    url: str = Field(..., examples=["https://github.com/nodejs/node/issues/42"])
    action: ArtifactAction = Field(
        ArtifactAction.FOUND,
        description="What the last reconciliation step did with this artifact.",
    )


class RunSummary(BaseModel):
    """
    Result of one end-to-end run, printed by the CLI.
    """

    group_id: str
    status: RunStatus
    title: str | None = None
    meeting_date: datetime | None = None
    issue: ExternalArtifactHandle | None = None
    notes: ExternalArtifactHandle | None = None
