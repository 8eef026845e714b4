"""Raw Jira issue records as returned by the REST v2 API.

The models mirror Jira's nested JSON so that an API payload or an export file
entry can be validated directly. Records are frozen once parsed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from jira_beads_sync.errors import MalformedSourceResponse, ValidationFailure

EPIC_ISSUE_TYPE = "Epic"

# Jira returns timestamps like "2024-01-01T10:00:00.000+0000".
JIRA_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


class JiraModel(BaseModel):
    """Base for Jira payload models: frozen, alias-aware, tolerant of extra fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Jira sends explicit nulls for unset fields; let the defaults apply instead.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class IssueType(JiraModel):
    name: str = ""
    description: str = ""
    subtask: bool = False

    @property
    def is_epic(self) -> bool:
        return self.name == EPIC_ISSUE_TYPE


class StatusCategory(JiraModel):
    key: str = ""  # "new", "indeterminate", "done"
    name: str = ""


class Status(JiraModel):
    name: str = ""
    status_category: StatusCategory = Field(default_factory=StatusCategory, alias="statusCategory")


class Priority(JiraModel):
    name: str = ""
    id: str = ""


class JiraUser(JiraModel):
    account_id: str = Field(default="", alias="accountId")
    display_name: str = Field(default="", alias="displayName")
    email_address: str = Field(default="", alias="emailAddress")
    active: bool = True


class LinkedFields(JiraModel):
    """The minimal field set Jira embeds in parent, link and subtask references."""

    summary: str = ""
    status: Status = Field(default_factory=Status)
    issue_type: IssueType = Field(default_factory=IssueType, alias="issuetype")


class IssueRef(JiraModel):
    """A reference to another issue (parent, link target or subtask)."""

    id: str = ""
    key: str
    fields: LinkedFields = Field(default_factory=LinkedFields)

    @property
    def issue_type(self) -> IssueType:
        return self.fields.issue_type


class IssueLinkType(JiraModel):
    name: str = ""
    inward: str = ""  # e.g. "is blocked by"
    outward: str = ""  # e.g. "blocks"


class IssueLink(JiraModel):
    id: str = ""
    type: IssueLinkType = Field(default_factory=IssueLinkType)
    inward_issue: IssueRef | None = Field(default=None, alias="inwardIssue")
    outward_issue: IssueRef | None = Field(default=None, alias="outwardIssue")


class EpicRef(JiraModel):
    id: str = ""
    key: str = ""
    name: str = ""
    summary: str = ""
    done: bool = False


class IssueFields(JiraModel):
    summary: str = ""
    description: str = ""
    issue_type: IssueType = Field(default_factory=IssueType, alias="issuetype")
    status: Status = Field(default_factory=Status)
    priority: Priority = Field(default_factory=Priority)
    assignee: JiraUser | None = None
    reporter: JiraUser | None = None
    created: datetime | None = None
    updated: datetime | None = None
    labels: tuple[str, ...] = ()
    issue_links: tuple[IssueLink, ...] = Field(default=(), alias="issuelinks")
    parent: IssueRef | None = None
    epic: EpicRef | None = None
    subtasks: tuple[IssueRef, ...] = ()

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _parse_jira_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return None
            return parse_jira_time(value)
        return value


class RawIssue(JiraModel):
    """A single Jira issue (story, task, bug, subtask or epic)."""

    id: str = ""
    key: str = ""
    self_url: str = Field(default="", alias="self")
    fields: IssueFields = Field(default_factory=IssueFields)

    @property
    def issue_type(self) -> IssueType:
        return self.fields.issue_type

    @property
    def is_epic(self) -> bool:
        return self.fields.issue_type.is_epic

    @property
    def is_subtask(self) -> bool:
        return self.fields.issue_type.subtask

    def require_fields(self) -> None:
        """Raise ValidationFailure if the key, summary or issue type is missing."""

        if not self.key.strip():
            raise ValidationFailure("Issue has no key", key=self.id or None)
        if not self.fields.summary.strip():
            raise ValidationFailure(f"Issue {self.key} has no summary", key=self.key)
        if not self.fields.issue_type.name.strip():
            raise ValidationFailure(f"Issue {self.key} has no issue type", key=self.key)


def parse_jira_time(value: str) -> datetime:
    """Parse a Jira timestamp, accepting ISO-8601 as a fallback."""

    try:
        return datetime.strptime(value, JIRA_TIME_FORMAT)
    except ValueError:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_issue(payload: Any, *, key: str | None = None) -> RawIssue:
    """Validate a Jira issue payload and check its required fields.

    Args:
        payload: Decoded JSON for one issue.
        key: The key that was requested, used for error context.

    Raises:
        MalformedSourceResponse: If the payload does not match the Jira shape.
        ValidationFailure: If a required field is empty.
    """

    if not isinstance(payload, dict):
        raise MalformedSourceResponse(f"Issue {key or '<unknown>'} is not a JSON object", key=key)

    if key is None and isinstance(payload.get("key"), str):
        key = payload["key"]
    try:
        issue = RawIssue.model_validate(payload)
    except ValidationError as e:
        raise MalformedSourceResponse(
            f"Failed to parse issue {key or '<unknown>'}: {e}", key=key
        ) from e
    issue.require_fields()
    return issue
