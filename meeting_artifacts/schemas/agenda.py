# meeting_artifacts/schemas/agenda.py
from pydantic import BaseModel, Field


class AgendaIssue(BaseModel):
    number: int = Field(..., examples=[1234])
    title: str = Field(..., examples=["Discuss release schedule"])
    url: str = Field(
        ...,
        description="Browser URL of the issue.",
        examples=["https://github.com/nodejs/node/issues/1234"],
    )


class AgendaEntry(BaseModel):
    """
    Open agenda issues of one repository.

    A full agenda is a list of entries in the order the repositories were
    first seen upstream; repositories without matching issues never get an
    entry.
    """

    repository: str = Field(
        ...,
        description="Full repository name, owner included.",
        examples=["nodejs/node"],
    )
    issues: list[AgendaIssue] = Field(default_factory=list)
