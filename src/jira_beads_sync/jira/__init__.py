"""Jira side of the sync: raw issue models, the REST client and export reader."""

from jira_beads_sync.jira.client import JiraClient
from jira_beads_sync.jira.export import load_export
from jira_beads_sync.jira.models import RawIssue
from jira_beads_sync.jira.source import IssueSource, SearchResult

__all__ = [
    "IssueSource",
    "JiraClient",
    "RawIssue",
    "SearchResult",
    "load_export",
]
