"""End-to-end sync: fetch from Jira, convert to beads, render to disk.

Conversion always finishes before rendering starts, so a conversion error leaves
the output directory untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from jira_beads_sync.beads.models import BeadsExport
from jira_beads_sync.beads.renderer import Renderer
from jira_beads_sync.converter import SchemaConverter
from jira_beads_sync.fetcher import GraphFetcher
from jira_beads_sync.jira.export import load_export
from jira_beads_sync.jira.models import RawIssue
from jira_beads_sync.jira.source import IssueSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SyncSummary:
    """What a sync run produced."""

    issues: int
    epics: int
    output_dir: Path
    fetched_keys: list[str] = field(default_factory=list)
    truncated: bool = False


class SyncPipeline:
    """High-level, testable orchestration of fetch -> convert -> render."""

    def __init__(
        self,
        *,
        renderer: Renderer,
        source: IssueSource | None = None,
        converter: SchemaConverter | None = None,
    ) -> None:
        self._renderer = renderer
        self._source = source
        self._converter = converter or SchemaConverter()

    def _fetcher(self) -> GraphFetcher:
        if self._source is None:
            raise RuntimeError("This pipeline has no issue source; only convert_file is available")
        return GraphFetcher(self._source)

    def sync_issue(self, key: str) -> SyncSummary:
        """Import `key` and everything reachable from it."""

        records = self._fetcher().fetch_from([key])
        return self._convert_and_render(records)

    def sync_query(self, query: str, *, strict: bool = False) -> SyncSummary:
        result = self._fetcher().fetch_by_query(query, strict=strict)
        return self._convert_and_render(result.records, truncated=result.truncated)

    def sync_label(self, label: str, *, strict: bool = False) -> SyncSummary:
        result = self._fetcher().fetch_by_label(label, strict=strict)
        return self._convert_and_render(result.records, truncated=result.truncated)

    def convert_file(self, path: Path) -> SyncSummary:
        """Convert a Jira export file without contacting Jira."""

        return self._convert_and_render(load_export(path))

    def convert(self, records: Sequence[RawIssue]) -> BeadsExport:
        return self._converter.convert(records)

    def _convert_and_render(
        self, records: Sequence[RawIssue], *, truncated: bool = False
    ) -> SyncSummary:
        export = self._converter.convert(records)
        self._renderer.render_export(export)

        summary = SyncSummary(
            issues=len(export.issues),
            epics=len(export.epics),
            output_dir=self._renderer.beads_dir,
            fetched_keys=[record.key for record in records],
            truncated=truncated,
        )
        logger.info(
            "Sync complete",
            extra={
                "issues": summary.issues,
                "epics": summary.epics,
                "path": str(summary.output_dir),
            },
        )
        return summary
