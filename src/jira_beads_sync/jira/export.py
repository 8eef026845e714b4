"""Read Jira export files (`{"issues": [...]}`) for offline conversion."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from jira_beads_sync.errors import EmptyResultSet, MalformedSourceResponse
from jira_beads_sync.jira.models import RawIssue, parse_issue

logger = logging.getLogger(__name__)


def parse_export(text: str, *, source: str = "<export>") -> list[RawIssue]:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedSourceResponse(f"Failed to parse Jira export {source}: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("issues"), list):
        raise MalformedSourceResponse(f"Jira export {source} has no 'issues' list")

    items = raw["issues"]
    if not items:
        raise EmptyResultSet(f"Jira export {source} contains no issues")

    issues: list[RawIssue] = []
    for index, item in enumerate(items):
        key = item.get("key") if isinstance(item, dict) else None
        issues.append(parse_issue(item, key=key if isinstance(key, str) else f"#{index}"))
    return issues


def load_export(path: Path) -> list[RawIssue]:
    """Load and validate every issue in a Jira export file."""

    issues = parse_export(path.read_text(encoding="utf-8"), source=str(path))
    logger.info("Loaded Jira export", extra={"path": str(path), "issues": len(issues)})
    return issues
