"""Persist beads entities under `<output_dir>/.beads/`.

Two layouts are supported:

* `YamlRenderer`: one file per entity, `.beads/issues/<id>.yaml` and
  `.beads/epics/<id>.yaml`;
* `JsonlRenderer`: `.beads/issues.jsonl` and `.beads/epics.jsonl`, one entity
  per line.

Both write the same camelCase document shape (see `BeadsModel.to_document`).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

import yaml

from jira_beads_sync.beads.models import BeadsEntity, BeadsEpic, BeadsExport, BeadsIssue
from jira_beads_sync.errors import AnnotationError

logger = logging.getLogger(__name__)

BEADS_DIR = ".beads"
REPOSITORIES_KEY = "repositories"


class Renderer(Protocol):
    @property
    def beads_dir(self) -> Path: ...

    def render_export(self, export: BeadsExport) -> None: ...

    def render(self, entity: BeadsEntity) -> Path: ...

    def add_repository_annotation(self, issue_id: str, repository: str) -> None: ...


def annotate_document(document: dict[str, Any], repository: str) -> dict[str, Any]:
    """Return `document` with `repository` appended to its repositories metadata."""

    issue_id = document.get("id", "")
    metadata = dict(document.get("metadata") or {})
    custom = dict(metadata.get("custom") or {})

    existing = custom.get(REPOSITORIES_KEY, "")
    repos = [r.strip() for r in existing.split(",") if r.strip()]
    if repository in repos:
        raise AnnotationError(
            f"Repository {repository!r} is already associated with issue {issue_id}",
            key=issue_id,
        )
    repos.append(repository)

    custom[REPOSITORIES_KEY] = ",".join(repos)
    metadata["custom"] = custom
    return {**document, "metadata": metadata}


class YamlRenderer:
    """One YAML file per issue or epic."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    @property
    def beads_dir(self) -> Path:
        return self._output_dir / BEADS_DIR

    @property
    def issues_dir(self) -> Path:
        return self.beads_dir / "issues"

    @property
    def epics_dir(self) -> Path:
        return self.beads_dir / "epics"

    def render_export(self, export: BeadsExport) -> None:
        for epic in export.epics:
            self.render(epic)
        for issue in export.issues:
            self.render(issue)
        logger.info(
            "Rendered YAML files",
            extra={
                "path": str(self.beads_dir),
                "issues": len(export.issues),
                "epics": len(export.epics),
            },
        )

    def render(self, entity: BeadsEntity) -> Path:
        if isinstance(entity, BeadsIssue):
            path = self.issues_dir / f"{entity.id}.yaml"
        elif isinstance(entity, BeadsEpic):
            path = self.epics_dir / f"{entity.id}.yaml"
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

        self._write(path, entity.to_document())
        return path

    def render_to_string(self, entity: BeadsEntity) -> str:
        if not isinstance(entity, (BeadsIssue, BeadsEpic)):
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")
        return _dump_yaml(entity.to_document())

    def read_issue(self, path: Path) -> BeadsIssue:
        return BeadsIssue.model_validate(_load_yaml(path))

    def read_epic(self, path: Path) -> BeadsEpic:
        return BeadsEpic.model_validate(_load_yaml(path))

    def add_repository_annotation(self, issue_id: str, repository: str) -> None:
        path = self.issues_dir / f"{issue_id}.yaml"
        if not path.exists():
            raise AnnotationError(f"Issue {issue_id} not found at {path}", key=issue_id)

        document = annotate_document(_load_yaml(path), repository)
        self._write(path, document)
        logger.info(
            "Annotated issue with repository",
            extra={"issue_id": issue_id, "repository": repository, "path": str(path)},
        )

    @staticmethod
    def _write(path: Path, document: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_dump_yaml(document), encoding="utf-8")


class JsonlRenderer:
    """All issues in one JSONL file, all epics in another."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    @property
    def beads_dir(self) -> Path:
        return self._output_dir / BEADS_DIR

    @property
    def issues_file(self) -> Path:
        return self.beads_dir / "issues.jsonl"

    @property
    def epics_file(self) -> Path:
        return self.beads_dir / "epics.jsonl"

    def render_export(self, export: BeadsExport) -> None:
        self.beads_dir.mkdir(parents=True, exist_ok=True)
        _write_jsonl(self.issues_file, [issue.to_document() for issue in export.issues])
        if export.epics:
            _write_jsonl(self.epics_file, [epic.to_document() for epic in export.epics])
        else:
            self.epics_file.unlink(missing_ok=True)
        logger.info(
            "Rendered JSONL files",
            extra={
                "path": str(self.beads_dir),
                "issues": len(export.issues),
                "epics": len(export.epics),
            },
        )

    def render(self, entity: BeadsEntity) -> Path:
        """Append one entity to its JSONL file."""

        if isinstance(entity, BeadsIssue):
            path = self.issues_file
        elif isinstance(entity, BeadsEpic):
            path = self.epics_file
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entity.to_document(), ensure_ascii=False) + "\n")
        return path

    def read_issues(self) -> list[BeadsIssue]:
        return [BeadsIssue.model_validate(doc) for doc in _read_jsonl(self.issues_file)]

    def read_epics(self) -> list[BeadsEpic]:
        if not self.epics_file.exists():
            return []
        return [BeadsEpic.model_validate(doc) for doc in _read_jsonl(self.epics_file)]

    def add_repository_annotation(self, issue_id: str, repository: str) -> None:
        if not self.issues_file.exists():
            raise AnnotationError(f"Issues file not found: {self.issues_file}", key=issue_id)

        documents = _read_jsonl(self.issues_file)
        found = False
        for index, document in enumerate(documents):
            if document.get("id") == issue_id:
                documents[index] = annotate_document(document, repository)
                found = True
        if not found:
            raise AnnotationError(f"Issue {issue_id} not found in issues file", key=issue_id)

        _write_jsonl(self.issues_file, documents)
        logger.info(
            "Annotated issue with repository",
            extra={"issue_id": issue_id, "repository": repository, "path": str(self.issues_file)},
        )


def _dump_yaml(document: dict[str, Any]) -> str:
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping in {path}")
    return data


def _write_jsonl(path: Path, documents: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [json.dumps(doc, ensure_ascii=False) for doc in documents]
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")


def _read_jsonl(path: Path) -> list[dict[str, Any]]:
    documents: list[dict[str, Any]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        doc = json.loads(line)
        if not isinstance(doc, dict):
            raise ValueError(f"Expected a JSON object per line in {path}")
        documents.append(doc)
    return documents
