"""beads side of the sync: target entity models and file renderers."""

from jira_beads_sync.beads.models import (
    BeadsEntity,
    BeadsEpic,
    BeadsExport,
    BeadsIssue,
    Metadata,
    Priority,
    Status,
)
from jira_beads_sync.beads.renderer import JsonlRenderer, Renderer, YamlRenderer

__all__ = [
    "BeadsEntity",
    "BeadsEpic",
    "BeadsExport",
    "BeadsIssue",
    "JsonlRenderer",
    "Metadata",
    "Priority",
    "Renderer",
    "Status",
    "YamlRenderer",
]
