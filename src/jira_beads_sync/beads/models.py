"""beads entity model: flat, dependency-linked issues and epics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Status(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    CLOSED = "closed"


class Priority(str, Enum):
    """Ordinal urgency scale; P0 is the most urgent."""

    P0 = "p0"
    P1 = "p1"
    P2 = "p2"
    P3 = "p3"
    P4 = "p4"


class BeadsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    def to_document(self) -> dict[str, Any]:
        """Serialise with camelCase keys, omitting empty optional values."""

        raw = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return _drop_empty(raw)


class Metadata(BeadsModel):
    """Traceability back to the Jira issue an entity was converted from."""

    jira_key: str = Field(default="", alias="jiraKey")
    jira_id: str = Field(default="", alias="jiraId")
    jira_issue_type: str = Field(default="", alias="jiraIssueType")
    custom: dict[str, str] = Field(default_factory=dict)


class BeadsIssue(BeadsModel):
    id: str
    title: str
    description: str = ""
    status: Status = Status.OPEN
    priority: Priority = Priority.P2
    epic: str | None = None
    assignee: str | None = None
    labels: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list, alias="dependsOn")
    created: datetime | None = None
    updated: datetime | None = None
    metadata: Metadata = Field(default_factory=Metadata)

    def add_dependency(self, beads_id: str) -> bool:
        """Append a dependency unless it is already present.

        Returns:
            True if the dependency was added.
        """

        if beads_id in self.depends_on:
            return False
        self.depends_on.append(beads_id)
        return True


class BeadsEpic(BeadsModel):
    id: str
    name: str
    description: str = ""
    status: Status = Status.OPEN
    created: datetime | None = None
    updated: datetime | None = None
    metadata: Metadata = Field(default_factory=Metadata)


# Closed set of entity kinds a renderer accepts.
BeadsEntity = BeadsIssue | BeadsEpic


@dataclass(slots=True)
class BeadsExport:
    """Result of one conversion run."""

    issues: list[BeadsIssue] = field(default_factory=list)
    epics: list[BeadsEpic] = field(default_factory=list)

    def issue_by_id(self, beads_id: str) -> BeadsIssue | None:
        for issue in self.issues:
            if issue.id == beads_id:
                return issue
        return None

    def epic_by_id(self, beads_id: str) -> BeadsEpic | None:
        for epic in self.epics:
            if epic.id == beads_id:
                return epic
        return None


def _drop_empty(data: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _drop_empty(value)
        if value in ("", [], {}):
            continue
        out[key] = value
    return out
