"""jira-beads-sync.

Imports Jira task trees into beads:
- dependency-graph fetch from Jira (by issue, label or JQL)
- conversion of Jira issues/epics to beads issues/epics
- YAML or JSONL output under `.beads/`
"""

__version__ = "0.1.0"

from jira_beads_sync.config import Settings

__all__ = ["__version__", "Settings"]
