"""Unit tests for the fetch -> convert -> render pipeline."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from jira_beads_sync.beads.renderer import JsonlRenderer, Renderer, YamlRenderer
from jira_beads_sync.errors import IdCollision
from jira_beads_sync.jira.source import SearchResult, label_query
from jira_beads_sync.pipeline import SyncPipeline


def test_sync_issue_writes_yaml_tree(tmp_path: Path, raw_issue, fake_source) -> None:
    source = fake_source(
        raw_issue("PROJ-1", subtasks=["PROJ-2"], parent=("PROJ-100", "Epic")),
        raw_issue("PROJ-2", issue_type="Sub-task", subtask=True, parent=("PROJ-1", "Task")),
    )
    renderer = YamlRenderer(tmp_path)

    summary = SyncPipeline(source=source, renderer=renderer).sync_issue("PROJ-1")

    assert summary.issues == 2
    assert summary.epics == 0
    assert summary.fetched_keys == ["PROJ-1", "PROJ-2"]
    assert summary.output_dir == tmp_path / ".beads"
    assert summary.truncated is False
    subtask = renderer.read_issue(renderer.issues_dir / "proj-2.yaml")
    assert subtask.depends_on == ["proj-1"]


def test_sync_label_reports_truncation(tmp_path: Path, raw_issue, fake_source) -> None:
    source = fake_source(
        raw_issue("PROJ-1", labels=["backend"]),
        searches={label_query("backend"): SearchResult(keys=["PROJ-1"], total=3)},
    )

    summary = SyncPipeline(source=source, renderer=JsonlRenderer(tmp_path)).sync_label("backend")

    assert summary.truncated is True
    assert summary.issues == 1


def test_sync_query_uses_query_verbatim(tmp_path: Path, raw_issue, fake_source) -> None:
    query = "project = PROJ AND status != Done"
    source = fake_source(
        raw_issue("PROJ-1"),
        searches={query: SearchResult(keys=["PROJ-1"], total=1)},
    )

    summary = SyncPipeline(source=source, renderer=JsonlRenderer(tmp_path)).sync_query(query)

    assert source.queries == [query]
    assert summary.fetched_keys == ["PROJ-1"]


def test_convert_file_needs_no_source(tmp_path: Path, raw_issue) -> None:
    export_path = tmp_path / "export.json"
    export_path.write_text(
        json.dumps(
            {
                "issues": [
                    raw_issue("PROJ-100", issue_type="Epic"),
                    raw_issue("PROJ-1", parent=("PROJ-100", "Epic")),
                ]
            }
        ),
        encoding="utf-8",
    )
    renderer = JsonlRenderer(tmp_path / "out")

    summary = SyncPipeline(renderer=renderer).convert_file(export_path)

    assert (summary.issues, summary.epics) == (1, 1)
    assert renderer.read_issues()[0].epic == "proj-100"


def test_conversion_failure_renders_nothing(parsed_issue) -> None:
    renderer = Mock(spec=Renderer)
    pipeline = SyncPipeline(renderer=renderer)

    with pytest.raises(IdCollision):
        pipeline._convert_and_render([parsed_issue("PROJ-1"), parsed_issue("proj-1")])

    renderer.render_export.assert_not_called()


def test_fetch_without_source_is_rejected(tmp_path: Path) -> None:
    pipeline = SyncPipeline(renderer=YamlRenderer(tmp_path))

    with pytest.raises(RuntimeError):
        pipeline.sync_issue("PROJ-1")
