#!/usr/bin/env python3
"""Programmatic sync example.

This demonstrates using the sync components directly:

* load Jira credentials from the environment, `.env` or the config file
* fetch every issue carrying a label, plus everything it depends on
* treat extra link phrases as dependencies (not available from the CLI)
* write JSONL files under `<output-dir>/.beads/`
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from jira_beads_sync.beads.renderer import JsonlRenderer
from jira_beads_sync.config import Settings
from jira_beads_sync.converter import LinkRules, SchemaConverter
from jira_beads_sync.errors import SyncError
from jira_beads_sync.jira.client import JiraClient
from jira_beads_sync.logging import configure_logging
from jira_beads_sync.pipeline import SyncPipeline


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync a Jira label to beads (programmatic example).")
    parser.add_argument("--label", required=True, help="Jira label to import")
    parser.add_argument("--output-dir", default=".", help="Directory that receives .beads/")
    parser.add_argument(
        "--also-depends-on",
        default="",
        help='Comma-separated outward link phrases to treat as dependencies, e.g. "relates to"',
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    extra = {p.strip() for p in args.also_depends_on.split(",") if p.strip()}
    rules = LinkRules(outward=frozenset({"depends on", *extra}))

    settings = Settings()
    configure_logging(settings.log_level, settings.log_format)
    settings.require_jira()

    client = JiraClient(
        base_url=settings.jira_base_url,
        username=settings.jira_username,
        api_token=settings.jira_api_token,
        max_results=settings.jira_search_max_results,
    )
    pipeline = SyncPipeline(
        source=client,
        renderer=JsonlRenderer(Path(args.output_dir)),
        converter=SchemaConverter(link_rules=rules),
    )

    try:
        summary = pipeline.sync_label(args.label)
    except SyncError as exc:
        print(f"Sync failed: {exc}")
        return 1
    finally:
        client.close()

    print(f"Imported {summary.issues} issue(s) and {summary.epics} epic(s)")
    print(f"Written to: {summary.output_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
